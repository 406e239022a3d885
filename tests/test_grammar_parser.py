import pytest

from lr1_parser import (
    EPSILON,
    EmptyInputError,
    GrammarParser,
    MalformedRuleError,
    SymbolClassifier,
)


def parse(text):
    return GrammarParser().parse(text)


def test_expression_grammar():
    grammar = parse("S -> E\nE -> E + T | T\nT -> id")

    assert grammar.start_symbol == "S"
    assert grammar.productions == {
        "S": [("E",)],
        "E": [("E", "+", "T"), ("T",)],
        "T": [("id",)],
    }
    assert [str(p) for p in grammar.flattened()] == [
        "S -> E",
        "E -> E + T",
        "E -> T",
        "T -> id",
    ]


@pytest.mark.parametrize("text", ["", "   ", "\n\t \r\n  "])
def test_blank_input_is_rejected(text):
    with pytest.raises(EmptyInputError):
        parse(text)


def test_epsilon_forms():
    grammar = parse("A ->\nB -> b |\nC -> c | ε")

    assert grammar.productions == {
        "A": [()],
        "B": [("b",), ()],
        "C": [("c",), ()],
    }
    assert str(grammar.rules[0]) == f"A -> {EPSILON}"
    assert grammar.rules[0].is_epsilon


def test_lines_with_same_lhs_accumulate():
    grammar = parse("A -> x\nB -> y\nA -> z")

    assert grammar.productions == {"A": [("x",), ("z",)], "B": [("y",)]}

    # Ids follow the flattened grammar, the rule list keeps file order.
    assert [(p.id, str(p)) for p in grammar.rules] == [
        (0, "A -> x"),
        (2, "B -> y"),
        (1, "A -> z"),
    ]
    assert grammar.production_id("A", ["z"]) == 1
    assert grammar.production_id("B", ("y",)) == 2


def test_duplicate_alternative_uses_first_id():
    grammar = parse("A -> x | x | y")

    assert [p.id for p in grammar.rules] == [0, 1, 2]
    assert grammar.production_id("A", ("x",)) == 0
    assert grammar.production_id("A", ("y",)) == 2


def test_whitespace_and_line_breaks_are_insignificant():
    compact = parse("S->E\r\n\r\nE   ->E  +\tT|T\rT -> id   ")
    plain = parse("S -> E\nE -> E + T | T\nT -> id")

    assert compact.productions == plain.productions
    assert compact.rules == plain.rules


@pytest.mark.parametrize(
    "text,line_number",
    [
        ("S -> a\nB c", 2),
        ("-> a", 1),
        ("A B -> c", 1),
        ("S -> a -> b", 1),
        ("S -> a $", 1),
        ("$ -> a", 1),
        ("S -> a\n\nT -> a ε b", 3),
    ],
)
def test_malformed_rules(text, line_number):
    with pytest.raises(MalformedRuleError) as info:
        parse(text)

    assert info.value.line_number == line_number
    assert info.value.line == text.splitlines()[line_number - 1].strip()
    assert f"Line {line_number}" in str(info.value)


def test_classifier_first_seen_order():
    grammar = parse("S -> b A a\nA -> c S | d\nB -> a")
    symbols = SymbolClassifier().classify(grammar.rules)

    assert symbols.non_terminals == ["S", "A", "B"]
    assert symbols.terminals == ["b", "a", "c", "d"]


def test_classifier_ignores_epsilon():
    grammar = parse("S -> A b\nA -> a |")
    symbols = SymbolClassifier().classify(grammar.rules)

    assert symbols.terminals == ["b", "a"]
    assert EPSILON not in symbols.terminals
