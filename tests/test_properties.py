"""Property tests over small generated grammars."""

from hypothesis import given, settings
from hypothesis.strategies import composite, lists, sampled_from

from lr1_parser import GrammarParser, LR1AutomatonBuilder, build_lr1

NON_TERMINALS = ["S", "A", "B"]
SYMBOLS = NON_TERMINALS + ["a", "b", "c"]


@composite
def grammars(draw):
    """Rule lines for S, A and B, each with one to three alternatives."""
    lines = []
    for lhs in NON_TERMINALS:
        alternatives = draw(lists(lists(sampled_from(SYMBOLS), max_size=3), min_size=1, max_size=3))
        lines.append((lhs, alternatives))
    return lines


def render(lines):
    return "\n".join(
        f"{lhs} -> " + " | ".join(" ".join(alt) for alt in alternatives)
        for lhs, alternatives in lines
    )


def render_messy(lines):
    return "\r\n\r\n".join(
        f"  {lhs}->" + "|".join("\t" + "   ".join(alt) + " " for alt in alternatives)
        for lhs, alternatives in lines
    )


@settings(max_examples=50, deadline=None)
@given(grammars())
def test_closure_and_goto_are_consistent(lines):
    builder = LR1AutomatonBuilder(GrammarParser().parse(render(lines)))
    automaton = builder.canonical_collection()

    assert len({state.key for state in automaton}) == len(automaton)
    for state in automaton:
        assert frozenset(builder.closure(state.items)) == state.key
        assert set(state.transitions) == set(state.symbols_after_dot())
        for symbol, target in state.transitions.items():
            assert frozenset(builder.goto(state.items, symbol)) == automaton[target].key


@settings(max_examples=50, deadline=None)
@given(grammars())
def test_builds_are_deterministic(lines):
    text = render(lines)
    first = build_lr1(text)
    second = build_lr1(text)

    assert first.automaton.to_dict() == second.automaton.to_dict()
    assert first.table.rows() == second.table.rows()


@settings(max_examples=50, deadline=None)
@given(grammars())
def test_layout_does_not_matter(lines):
    plain = build_lr1(render(lines))
    messy = build_lr1(render_messy(lines))

    assert messy.automaton.to_dict() == plain.automaton.to_dict()
    assert messy.table.to_dict() == plain.table.to_dict()
