import pytest

from lr1_parser import GrammarParser, Item, LR1AutomatonBuilder

EXPR = "S -> E\nE -> E + T | T\nT -> id"


def builder(text=EXPR):
    return LR1AutomatonBuilder(GrammarParser().parse(text))


@pytest.fixture
def automaton():
    return builder().canonical_collection()


def test_initial_state(automaton):
    state = automaton[0]
    items = set(state.items)

    assert {
        Item("S'", ("S",), 0, "$"),
        Item("S", ("E",), 0, "$"),
        Item("E", ("E", "+", "T"), 0, "$"),
        Item("E", ("T",), 0, "$"),
        Item("T", ("id",), 0, "$"),
    } <= items
    # The left-recursive E also predicts its productions with lookahead '+'.
    assert items - {
        Item("S'", ("S",), 0, "$"),
        Item("S", ("E",), 0, "$"),
        Item("E", ("E", "+", "T"), 0, "$"),
        Item("E", ("T",), 0, "$"),
        Item("T", ("id",), 0, "$"),
    } == {
        Item("E", ("E", "+", "T"), 0, "+"),
        Item("E", ("T",), 0, "+"),
        Item("T", ("id",), 0, "+"),
    }
    assert state.items[0] == Item("S'", ("S",), 0, "$")


def test_state_order_and_transitions(automaton):
    assert len(automaton) == 7
    assert automaton.augmented_start == "S'"
    assert [state.transitions for state in automaton] == [
        {"S": 1, "E": 2, "T": 3, "id": 4},
        {},
        {"+": 5},
        {},
        {},
        {"T": 6, "id": 4},
        {},
    ]
    assert set(automaton[4].items) == {
        Item("T", ("id",), 1, "$"),
        Item("T", ("id",), 1, "+"),
    }


def test_closure_is_idempotent(automaton):
    b = builder()
    for state in automaton:
        assert frozenset(b.closure(state.items)) == state.key
        once = b.closure(state.items[:1])
        assert b.closure(once) == once


def test_goto_without_matching_item_is_empty():
    b = builder()
    initial = b.closure([b.initial_item()])

    assert b.goto(initial, "+") == ()
    assert b.goto(initial, "nothing") == ()


def test_transitions_match_goto(automaton):
    b = builder()
    for state in automaton:
        assert set(state.transitions) == set(state.symbols_after_dot())
        for symbol, target in state.transitions.items():
            assert frozenset(b.goto(state.items, symbol)) == automaton[target].key


def test_states_are_unique(automaton):
    assert len({state.key for state in automaton}) == len(automaton)


def test_epsilon_production_item_is_complete():
    automaton = builder("S -> A b\nA -> a |").canonical_collection()

    epsilon_item = Item("A", (), 0, "b")
    assert epsilon_item in automaton[0].items
    assert epsilon_item.is_complete()
    assert epsilon_item.next_symbol() is None
    assert str(epsilon_item) == "[A -> ., b]"


def test_augmented_start_avoids_grammar_symbols():
    b = builder("S -> S' a | b")

    assert b.augmented_start == "S''"
    assert b.initial_item() == Item("S''", ("S",), 0, "$")


def test_dot_is_an_index_not_a_symbol():
    # A terminal spelled like the display dot must not confuse the builder.
    automaton = builder("S -> . a").canonical_collection()

    assert automaton[0].transitions == {"S": 1, ".": 2}
    assert str(Item("S", (".", "a"), 1, "$")) == "[S -> . . a, $]"


def test_to_dict(automaton):
    data = automaton.to_dict()

    assert data["augmented_start"] == "S'"
    assert len(data["states"]) == 7
    first = data["states"][0]
    assert first["index"] == 0
    assert first["transitions"] == {"S": 1, "E": 2, "T": 3, "id": 4}
    assert first["items"][0] == {
        "non_terminal": "S'",
        "production": ["S"],
        "dot": 0,
        "lookahead": "$",
        "text": "[S' -> . S, $]",
    }


def test_builds_are_deterministic():
    first = builder().canonical_collection()
    second = builder().canonical_collection()

    assert first.to_dict() == second.to_dict()
