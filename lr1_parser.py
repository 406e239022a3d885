"""
LR(1) Table Generator - Grammar Model, Automaton Construction and Parse Tables

This module turns textual production rules into a grammar model, computes
FIRST sets, builds the canonical collection of LR(1) item sets and derives
the ACTION/GOTO table that drives a shift-reduce parser.
"""

from dataclasses import dataclass, field
from typing import List, Set, Dict, Tuple, Optional, Union, Any, Iterable, Mapping
from collections import deque
from enum import Enum
import argparse
import logging
import re
import sys


logger = logging.getLogger(__name__)

END_MARKER = "$"
EPSILON = "ε"
ARROW = "->"

Cell = Union[str, int]


# --- Errors ---

class GrammarError(Exception):
    """Base class for every error raised while building a parse table."""
    error_type = "grammar_error"


class EmptyInputError(GrammarError):
    """Raised when the grammar text is blank or whitespace-only."""
    error_type = "empty_input"

    def __init__(self, message: str = "Input cannot be empty."):
        super().__init__(message)


class MalformedRuleError(GrammarError):
    """Raised for a rule line that cannot be read as `LHS -> RHS | ...`."""
    error_type = "malformed_rule"

    def __init__(self, message: str, line_number: int, line: str):
        super().__init__(f"Line {line_number}: {message}")
        self.line_number = line_number
        self.line = line


class ConflictError(GrammarError):
    """Raised when two different actions compete for one ACTION cell."""
    error_type = "conflict"

    def __init__(self, state: int, symbol: str, existing: "Action", incoming: "Action"):
        super().__init__(
            f"Conflict in state {state} on '{symbol}': {existing} vs {incoming}"
        )
        self.state = state
        self.symbol = symbol
        self.existing = existing
        self.incoming = incoming


# --- Configuration ---

class ConflictPolicy(Enum):
    """What the table builder does when a cell is assigned twice."""
    OVERWRITE = "overwrite"
    ERROR = "error"


class FirstStrategy(Enum):
    """How FIRST sets of nonterminals are computed."""
    GUARDED = "guarded"
    FIXED_POINT = "fixed_point"


@dataclass
class GeneratorConfig:
    """Configuration options for a single table build."""
    conflict_policy: ConflictPolicy = ConflictPolicy.OVERWRITE
    first_strategy: FirstStrategy = FirstStrategy.GUARDED

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'GeneratorConfig':
        """
        Build a config from plain string values (JSON bodies, env vars).

        Unknown keys are ignored; missing or empty keys keep their defaults.

        Raises:
            ValueError: if a value does not name a known policy or strategy.
        """
        config = cls()
        policy = mapping.get('conflict_policy')
        if policy:
            config.conflict_policy = ConflictPolicy(str(policy).lower())
        strategy = mapping.get('first_strategy')
        if strategy:
            config.first_strategy = FirstStrategy(str(strategy).lower())
        return config


# --- Grammar model ---

@dataclass(frozen=True)
class Production:
    """A single alternative of a nonterminal, with its stable identifier."""
    id: int
    lhs: str
    rhs: Tuple[str, ...]

    @property
    def is_epsilon(self) -> bool:
        return not self.rhs

    def __str__(self) -> str:
        if self.is_epsilon:
            return f"{self.lhs} -> {EPSILON}"
        return f"{self.lhs} -> {' '.join(self.rhs)}"


@dataclass
class Grammar:
    """
    A parsed context-free grammar.

    `productions` maps each nonterminal to its right-hand sides in insertion
    order; `rules` holds one Production per alternative in file order.
    """
    productions: Dict[str, List[Tuple[str, ...]]]
    rules: List[Production]
    start_symbol: str
    _ids: Dict[Tuple[str, Tuple[str, ...]], int] = field(default_factory=dict, repr=False)

    def __post_init__(self):
        if not self._ids:
            for production in self.flattened():
                self._ids.setdefault((production.lhs, production.rhs), production.id)

    def flattened(self) -> List[Production]:
        """All productions, numbered by nonterminal then production order."""
        result = []
        for lhs, alternatives in self.productions.items():
            for rhs in alternatives:
                result.append(Production(id=len(result), lhs=lhs, rhs=rhs))
        return result

    def production_id(self, lhs: str, rhs: Iterable[str]) -> int:
        """Identifier of the first production `lhs -> rhs`."""
        return self._ids[(lhs, tuple(rhs))]

    def is_nonterminal(self, symbol: str) -> bool:
        return symbol in self.productions

    def symbols(self) -> Set[str]:
        result = set(self.productions)
        for alternatives in self.productions.values():
            for rhs in alternatives:
                result.update(rhs)
        return result

    def __str__(self) -> str:
        lines = [f"Start Symbol: {self.start_symbol}", "Productions:"]
        for production in self.flattened():
            lines.append(f"  {production.id}: {production}")
        return "\n".join(lines)


class GrammarParser:
    """Parses rule text of the form `LHS -> RHS1 | RHS2 | ...`."""

    _line_break = re.compile(r'\r\n|\r|\n')

    def parse(self, text: str) -> Grammar:
        """
        Parse grammar text and return a Grammar.

        Blank lines are skipped. A missing right-hand side, an empty
        alternative or an alternative written as `ε` is an epsilon
        production. The start symbol is the LHS of the first rule.

        Raises:
            EmptyInputError: if the text is blank.
            MalformedRuleError: if a line is not a valid rule.
        """
        if not text or not text.strip():
            raise EmptyInputError()

        productions: Dict[str, List[Tuple[str, ...]]] = {}
        parsed: List[Tuple[str, Tuple[str, ...]]] = []

        for line_number, raw_line in enumerate(self._line_break.split(text), 1):
            line = raw_line.strip()
            if not line:
                continue
            lhs, alternatives = self._parse_line(line, line_number)
            entry = productions.setdefault(lhs, [])
            for rhs in alternatives:
                entry.append(rhs)
                parsed.append((lhs, rhs))

        # Rule ids follow the flattened grammar, not file order.
        positions: Dict[str, int] = {}
        offset = 0
        for lhs, alternatives in productions.items():
            positions[lhs] = offset
            offset += len(alternatives)

        seen: Dict[str, int] = {}
        rules = []
        for lhs, rhs in parsed:
            index = seen.get(lhs, 0)
            seen[lhs] = index + 1
            rules.append(Production(id=positions[lhs] + index, lhs=lhs, rhs=rhs))

        grammar = Grammar(productions=productions, rules=rules, start_symbol=parsed[0][0])
        logger.debug("Parsed %d productions for %d nonterminals",
                     len(rules), len(productions))
        return grammar

    def _parse_line(self, line: str, line_number: int) -> Tuple[str, List[Tuple[str, ...]]]:
        if ARROW not in line:
            raise MalformedRuleError(f"missing '{ARROW}' separator", line_number, line)

        lhs_text, _, rhs_text = line.partition(ARROW)
        if ARROW in rhs_text:
            raise MalformedRuleError(f"more than one '{ARROW}'", line_number, line)

        lhs_symbols = lhs_text.split()
        if not lhs_symbols:
            raise MalformedRuleError("missing left-hand side", line_number, line)
        if len(lhs_symbols) > 1:
            raise MalformedRuleError("left-hand side must be a single symbol", line_number, line)
        lhs = lhs_symbols[0]
        if lhs in (END_MARKER, EPSILON):
            raise MalformedRuleError(f"'{lhs}' is reserved", line_number, line)

        if not rhs_text.strip():
            return lhs, [()]

        alternatives = []
        for alternative in rhs_text.split('|'):
            symbols = alternative.split()
            if symbols == [EPSILON]:
                symbols = []
            elif EPSILON in symbols:
                raise MalformedRuleError(
                    f"'{EPSILON}' must stand alone in an alternative", line_number, line)
            if END_MARKER in symbols:
                raise MalformedRuleError(f"'{END_MARKER}' is reserved", line_number, line)
            alternatives.append(tuple(symbols))
        return lhs, alternatives


@dataclass
class SymbolSets:
    """Terminals and nonterminals, each in first-seen order."""
    terminals: List[str]
    non_terminals: List[str]


class SymbolClassifier:
    """Partitions grammar symbols into terminals and nonterminals."""

    def classify(self, rules: Iterable[Production]) -> SymbolSets:
        rules = list(rules)
        non_terminals = list(dict.fromkeys(rule.lhs for rule in rules))
        known = set(non_terminals)
        terminals: Dict[str, None] = {}
        for rule in rules:
            for symbol in rule.rhs:
                if symbol not in known:
                    terminals.setdefault(symbol)
        return SymbolSets(terminals=list(terminals), non_terminals=non_terminals)


# --- FIRST sets ---

class FirstSetCalculator:
    """
    Computes FIRST sets for symbols and symbol strings with memoization.

    With the default GUARDED strategy a nonterminal's FIRST set is the union,
    over its productions, of the FIRST set of the production's first symbol
    (or epsilon for the epsilon production). A symbol that is currently being
    expanded contributes nothing to its own expansion, which keeps
    left-recursive grammars from looping but can under-approximate FIRST.

    FIXED_POINT solves the standard FIRST equations for every nonterminal at
    once and is exact.
    """

    def __init__(self, grammar: Grammar, strategy: FirstStrategy = FirstStrategy.GUARDED):
        self.grammar = grammar
        self.strategy = strategy
        self._first_cache: Dict[str, Set[str]] = {}
        self._computing_first: Set[str] = set()
        self._first_string_cache: Dict[Tuple[str, ...], Set[str]] = {}

        if strategy is FirstStrategy.FIXED_POINT:
            self._solve_fixed_point()

    def compute_first(self, symbol: str) -> Set[str]:
        """FIRST(symbol); may contain EPSILON."""
        if not self.grammar.is_nonterminal(symbol):
            return {symbol}
        if symbol in self._computing_first:
            return set()
        if symbol in self._first_cache:
            return set(self._first_cache[symbol])

        self._computing_first.add(symbol)
        first_set = set()
        try:
            for rhs in self.grammar.productions[symbol]:
                if not rhs:
                    first_set.add(EPSILON)
                else:
                    first_set.update(self.compute_first(rhs[0]))
        finally:
            self._computing_first.discard(symbol)

        self._first_cache[symbol] = first_set
        return set(first_set)

    def compute_first_for_string(self, symbols: Iterable[str]) -> Set[str]:
        """
        FIRST of a symbol string.

        FIRST(X1 ... Xn) holds FIRST(X1) without epsilon, then FIRST of the
        rest while the prefix is nullable, and epsilon when all of it is.
        The empty string yields exactly {EPSILON}.
        """
        key = tuple(symbols)
        if key in self._first_string_cache:
            return set(self._first_string_cache[key])

        first_set: Set[str] = set()
        for symbol in key:
            symbol_first = self.compute_first(symbol)
            first_set.update(symbol_first - {EPSILON})
            if EPSILON not in symbol_first:
                break
        else:
            first_set.add(EPSILON)

        self._first_string_cache[key] = first_set
        return set(first_set)

    def _solve_fixed_point(self):
        first: Dict[str, Set[str]] = {nt: set() for nt in self.grammar.productions}

        def first_of(symbol: str) -> Set[str]:
            return first[symbol] if symbol in first else {symbol}

        changed = True
        while changed:
            changed = False
            for lhs, alternatives in self.grammar.productions.items():
                for rhs in alternatives:
                    addition: Set[str] = set()
                    for symbol in rhs:
                        symbol_first = first_of(symbol)
                        addition.update(symbol_first - {EPSILON})
                        if EPSILON not in symbol_first:
                            break
                    else:
                        addition.add(EPSILON)
                    if not addition <= first[lhs]:
                        first[lhs].update(addition)
                        changed = True

        self._first_cache = first


# --- LR(1) items and automaton ---

@dataclass(frozen=True, order=True)
class Item:
    """An LR(1) item: [non_terminal -> production with a dot, lookahead]."""
    non_terminal: str
    production: Tuple[str, ...]
    dot: int
    lookahead: str

    def is_complete(self) -> bool:
        return self.dot >= len(self.production)

    def next_symbol(self) -> Optional[str]:
        if self.is_complete():
            return None
        return self.production[self.dot]

    def advance(self) -> 'Item':
        return Item(self.non_terminal, self.production, self.dot + 1, self.lookahead)

    def __str__(self) -> str:
        if not self.production:
            return f"[{self.non_terminal} -> ., {self.lookahead}]"
        symbols = list(self.production)
        symbols.insert(self.dot, ".")
        return f"[{self.non_terminal} -> {' '.join(symbols)}, {self.lookahead}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'non_terminal': self.non_terminal,
            'production': list(self.production),
            'dot': self.dot,
            'lookahead': self.lookahead,
            'text': str(self),
        }


@dataclass
class State:
    """A state of the LR(1) automaton."""
    index: int
    items: Tuple[Item, ...]
    transitions: Dict[str, int] = field(default_factory=dict)

    @property
    def key(self) -> frozenset:
        return frozenset(self.items)

    def symbols_after_dot(self) -> List[str]:
        return _symbols_after_dot(self.items)

    def __str__(self) -> str:
        items_str = "\n  ".join(str(item) for item in self.items)
        return f"State {self.index}:\n  {items_str}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'items': [item.to_dict() for item in self.items],
            'transitions': dict(self.transitions),
        }


@dataclass
class Automaton:
    """The canonical collection of LR(1) item sets."""
    states: List[State]
    augmented_start: str

    def __len__(self) -> int:
        return len(self.states)

    def __getitem__(self, index: int) -> State:
        return self.states[index]

    def __iter__(self):
        return iter(self.states)

    def __str__(self) -> str:
        lines = [f"LR(1) Automaton with {len(self.states)} states"]
        for state in self.states:
            lines.append(str(state))
        lines.append("\nTransitions:")
        for state in self.states:
            for symbol, target in state.transitions.items():
                lines.append(f"  GOTO({state.index}, {symbol}) = {target}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'augmented_start': self.augmented_start,
            'states': [state.to_dict() for state in self.states],
        }


def _symbols_after_dot(items: Iterable[Item]) -> List[str]:
    symbols: Dict[str, None] = {}
    for item in items:
        symbol = item.next_symbol()
        if symbol is not None:
            symbols.setdefault(symbol)
    return list(symbols)


class LR1AutomatonBuilder:
    """Builds LR(1) closures, goto sets and the canonical collection."""

    def __init__(self, grammar: Grammar, first_calculator: Optional[FirstSetCalculator] = None):
        self.grammar = grammar
        self.first = first_calculator or FirstSetCalculator(grammar)

        symbols = grammar.symbols()
        augmented = f"{grammar.start_symbol}'"
        while augmented in symbols:
            augmented += "'"
        self.augmented_start = augmented

    def initial_item(self) -> Item:
        return Item(self.augmented_start, (self.grammar.start_symbol,), 0, END_MARKER)

    def closure(self, items: Iterable[Item]) -> Tuple[Item, ...]:
        """
        Compute the closure of a set of LR(1) items.

        For each item [A -> α.Bβ, a] with B a nonterminal, every production
        B -> γ and every terminal b in FIRST(βa) add [B -> .γ, b]. Items are
        added in passes until nothing changes; the returned order is the
        insertion order.
        """
        result: List[Item] = []
        present: Set[Item] = set()
        for item in items:
            if item not in present:
                present.add(item)
                result.append(item)

        changed = True
        while changed:
            changed = False
            new_items: List[Item] = []
            for item in result:
                next_symbol = item.next_symbol()
                if next_symbol is None or not self.grammar.is_nonterminal(next_symbol):
                    continue

                beta = item.production[item.dot + 1:]
                lookaheads = self.first.compute_first_for_string(beta + (item.lookahead,))
                lookaheads.discard(EPSILON)

                for rhs in self.grammar.productions[next_symbol]:
                    for lookahead in sorted(lookaheads):
                        new_item = Item(next_symbol, rhs, 0, lookahead)
                        if new_item not in present:
                            present.add(new_item)
                            new_items.append(new_item)

            if new_items:
                result.extend(new_items)
                changed = True

        return tuple(result)

    def goto(self, items: Iterable[Item], symbol: str) -> Tuple[Item, ...]:
        """Advance the dot over `symbol` and close; empty if nothing advances."""
        moved = [item.advance() for item in items if item.next_symbol() == symbol]
        if not moved:
            return ()
        return self.closure(moved)

    def canonical_collection(self) -> Automaton:
        """
        Build the canonical LR(1) automaton.

        State 0 is the closure of [S' -> .S, $]. States are explored from a
        FIFO frontier and numbered in discovery order; item sets are matched
        by their frozenset so equal sets always map to one state.
        """
        states: List[State] = []
        state_map: Dict[frozenset, int] = {}

        def register(items: Tuple[Item, ...]) -> int:
            key = frozenset(items)
            if key in state_map:
                return state_map[key]
            state = State(index=len(states), items=items)
            states.append(state)
            state_map[key] = state.index
            worklist.append(state.index)
            logger.debug("Registered state %d with %d items", state.index, len(items))
            return state.index

        worklist: deque = deque()
        register(self.closure([self.initial_item()]))

        while worklist:
            current = states[worklist.popleft()]
            for symbol in current.symbols_after_dot():
                goto_items = self.goto(current.items, symbol)
                if goto_items:
                    current.transitions[symbol] = register(goto_items)

        logger.info("Built LR(1) automaton with %d states", len(states))
        return Automaton(states=states, augmented_start=self.augmented_start)


# --- Parse tables ---

class ActionType(Enum):
    """Enumeration of LR parsing actions."""
    SHIFT = "shift"
    REDUCE = "reduce"
    ACCEPT = "accept"


@dataclass(frozen=True)
class Action:
    """A single ACTION table entry."""
    action_type: ActionType
    value: Optional[int] = None  # Target state for shift, production id for reduce

    def __str__(self) -> str:
        if self.action_type == ActionType.SHIFT:
            return f"s{self.value}"
        elif self.action_type == ActionType.REDUCE:
            return f"r{self.value}"
        return "acc"


@dataclass
class ParseTable:
    """ACTION and GOTO tables with their column order."""
    action: Dict[int, Dict[str, Action]]
    goto: Dict[int, Dict[str, int]]
    terminals: List[str]
    non_terminals: List[str]
    state_count: int

    @property
    def columns(self) -> List[str]:
        return self.terminals + [END_MARKER] + self.non_terminals

    def cell(self, state: int, symbol: str) -> Cell:
        """Encoded cell: `s<i>`, `r<id>`, `acc`, a goto state, or ''."""
        if symbol in self.goto.get(state, {}):
            return self.goto[state][symbol]
        action = self.action.get(state, {}).get(symbol)
        return str(action) if action else ''

    def rows(self) -> List[List[Cell]]:
        columns = self.columns
        return [[self.cell(state, symbol) for symbol in columns]
                for state in range(self.state_count)]

    def to_dict(self) -> Dict[str, Any]:
        return {'columns': self.columns, 'rows': self.rows()}

    def __str__(self) -> str:
        columns = self.columns
        rows = [[str(state)] + [str(cell) for cell in row]
                for state, row in enumerate(self.rows())]
        header = ["State"] + columns
        widths = [max(len(text) for text in column) for column in zip(header, *rows)]
        lines = ["  ".join(text.ljust(width) for text, width in zip(header, widths)).rstrip()]
        for row in rows:
            lines.append("  ".join(text.ljust(width) for text, width in zip(row, widths)).rstrip())
        return "\n".join(lines)


class ParseTableBuilder:
    """
    Derives ACTION/GOTO tables from an LR(1) automaton.

    With ConflictPolicy.OVERWRITE the later assignment to a cell replaces
    the earlier one without notice. ConflictPolicy.ERROR raises
    ConflictError instead.
    """

    def __init__(self, conflict_policy: ConflictPolicy = ConflictPolicy.OVERWRITE):
        self.conflict_policy = conflict_policy

    def build(self, automaton: Automaton, terminals: List[str], non_terminals: List[str],
              grammar: Grammar, start_symbol: str) -> ParseTable:
        terminal_set = set(terminals) | {END_MARKER}
        non_terminal_set = set(non_terminals)
        action: Dict[int, Dict[str, Action]] = {}
        goto: Dict[int, Dict[str, int]] = {}

        for state in automaton:
            row = action.setdefault(state.index, {})
            goto_row = goto.setdefault(state.index, {})

            for item in state.items:
                if item.is_complete():
                    if (item.non_terminal == automaton.augmented_start
                            and item.production == (start_symbol,)
                            and item.lookahead == END_MARKER):
                        self._set_action(row, state.index, END_MARKER,
                                         Action(ActionType.ACCEPT))
                    else:
                        production_id = grammar.production_id(item.non_terminal, item.production)
                        self._set_action(row, state.index, item.lookahead,
                                         Action(ActionType.REDUCE, production_id))
                    continue

                symbol = item.next_symbol()
                target = state.transitions.get(symbol)
                if target is None:
                    continue
                if symbol in terminal_set:
                    self._set_action(row, state.index, symbol, Action(ActionType.SHIFT, target))
                elif symbol in non_terminal_set:
                    goto_row[symbol] = target

        return ParseTable(action=action, goto=goto, terminals=list(terminals),
                          non_terminals=list(non_terminals), state_count=len(automaton))

    def _set_action(self, row: Dict[str, Action], state: int, symbol: str, action: Action):
        existing = row.get(symbol)
        if (existing is not None and existing != action
                and self.conflict_policy is ConflictPolicy.ERROR):
            raise ConflictError(state, symbol, existing, action)
        row[symbol] = action


# --- Pipeline ---

@dataclass
class LR1Result:
    """Everything produced by one build."""
    grammar: Grammar
    symbols: SymbolSets
    automaton: Automaton
    table: ParseTable


def build_lr1(text: str, config: Optional[GeneratorConfig] = None) -> LR1Result:
    """
    Parse grammar text and build its LR(1) automaton and parse table.

    Args:
        text: Grammar rules, one `LHS -> RHS | ...` per line
        config: Conflict policy and FIRST strategy; defaults when omitted

    Returns:
        LR1Result with the grammar, symbol sets, automaton and table

    Raises:
        GrammarError: on empty input, malformed rules or, under
            ConflictPolicy.ERROR, a table conflict
    """
    config = config or GeneratorConfig()

    grammar = GrammarParser().parse(text)
    symbols = SymbolClassifier().classify(grammar.rules)
    first = FirstSetCalculator(grammar, config.first_strategy)
    automaton = LR1AutomatonBuilder(grammar, first).canonical_collection()
    table = ParseTableBuilder(config.conflict_policy).build(
        automaton, symbols.terminals, symbols.non_terminals, grammar, grammar.start_symbol)

    logger.info("Built parse table: %d states, %d productions",
                len(automaton), len(grammar.rules))
    return LR1Result(grammar=grammar, symbols=symbols, automaton=automaton, table=table)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Build an LR(1) parse table for a grammar.")
    parser.add_argument("grammar", help="grammar file, one 'LHS -> RHS | ...' rule per line")
    parser.add_argument("--conflict-policy", choices=[p.value for p in ConflictPolicy],
                        default=ConflictPolicy.OVERWRITE.value)
    parser.add_argument("--first-strategy", choices=[s.value for s in FirstStrategy],
                        default=FirstStrategy.GUARDED.value)
    parser.add_argument("--states", action="store_true", help="print the item sets too")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    with open(args.grammar, encoding="utf-8") as f:
        text = f.read()

    config = GeneratorConfig.from_mapping({
        'conflict_policy': args.conflict_policy,
        'first_strategy': args.first_strategy,
    })
    try:
        result = build_lr1(text, config)
    except GrammarError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(result.grammar)
    print()
    if args.states:
        print(result.automaton)
        print()
    print(result.table)
    return 0


if __name__ == "__main__":
    sys.exit(main())
