"""
Visualization and Output Formatting Module

This module renders LR(1) parse tables and grammar errors as HTML for the
web service.
"""

from typing import List, Optional
from dataclasses import dataclass
import html

from lr1_parser import END_MARKER, GrammarError, MalformedRuleError, ParseTable, Cell


@dataclass
class VisualizationConfig:
    """Configuration options for visualization output."""
    table_css_classes: str = "parse-table"
    error_css_classes: str = "error-message"
    include_inline_styles: bool = True


class HTMLTableGenerator:
    """Generates HTML tables for LR(1) parse tables."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_parse_table_html(self, table: ParseTable) -> str:
        """
        Generate a combined HTML table for the ACTION and GOTO sections.

        Columns follow the table's own order: terminals, the end marker,
        then nonterminals. Rows are in state order.

        Args:
            table: ParseTable built for a grammar

        Returns:
            HTML string containing the parse table
        """
        if not table.state_count:
            return self._generate_empty_table_html("No parsing states found")

        action_columns = table.terminals + [END_MARKER]

        html_lines = []
        html_lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" aria-label="LR(1) Parsing Table with ACTION and GOTO sections">')
        html_lines.append(self._generate_table_header(action_columns, table.non_terminals))

        html_lines.append('<tbody>')
        for state, row in enumerate(table.rows()):
            html_lines.append(self._generate_table_row(state, row, len(action_columns)))
        html_lines.append('</tbody>')

        html_lines.append('</table>')

        return '\n'.join(html_lines)

    def _generate_table_header(self, action_columns: List[str],
                               non_terminals: List[str]) -> str:
        """Generate the table header with ACTION and GOTO sections."""
        lines = []
        lines.append('<thead>')

        lines.append('<tr>')
        lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col" rowspan="2">State</th>')
        lines.append(f'<th class="grammar-table-header" scope="colgroup" colspan="{len(action_columns)}">ACTION</th>')
        if non_terminals:
            lines.append(f'<th class="grammar-table-header" scope="colgroup" colspan="{len(non_terminals)}">GOTO</th>')
        lines.append('</tr>')

        lines.append('<tr>')
        for symbol in action_columns + non_terminals:
            lines.append(f'<th class="grammar-table-header" scope="col">{html.escape(symbol)}</th>')
        lines.append('</tr>')

        lines.append('</thead>')
        return '\n'.join(lines)

    def _generate_table_row(self, state: int, row: List[Cell], action_count: int) -> str:
        """Generate a single table row for the given state."""
        lines = []
        lines.append('<tr>')
        lines.append(f'<th class="grammar-table-cell grammar-table-cell-primary" scope="row">{state}</th>')

        for cell in row[:action_count]:
            lines.append(f'<td class="grammar-table-cell">{self._format_action(cell)}</td>')

        for cell in row[action_count:]:
            lines.append(f'<td class="grammar-table-cell">{cell}</td>')

        lines.append('</tr>')
        return '\n'.join(lines)

    def _format_action(self, action: Cell) -> str:
        """Format an encoded action cell for HTML display."""
        if action == '':
            return ''

        action = html.escape(str(action))

        if action == 'acc':
            return f'<span class="grammar-action-accept">{action}</span>'
        elif action.startswith('s'):
            return f'<span class="grammar-action-shift">{action}</span>'
        elif action.startswith('r'):
            return f'<span class="grammar-action-reduce">{action}</span>'
        return action

    def _generate_empty_table_html(self, message: str) -> str:
        """Generate HTML for an empty table with a message."""
        html_lines = []
        html_lines.append(f'<div class="{self.config.error_css_classes}">')
        html_lines.append(f'<p>{html.escape(message)}</p>')
        html_lines.append('</div>')
        return '\n'.join(html_lines)


class ErrorMessageFormatter:
    """Formats grammar errors with styling and the offending line."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def format_grammar_error(self, error: GrammarError) -> str:
        """
        Format a grammar error as HTML.

        Malformed rules also show the rule line that was rejected.
        """
        html_lines = []

        if self.config.include_inline_styles:
            html_lines.append(self._generate_error_styles())

        html_lines.append(f'<div class="{self.config.error_css_classes}">')
        html_lines.append('<h4>Grammar Error</h4>')
        html_lines.append(f'<p class="error-text">{html.escape(str(error))}</p>')

        if isinstance(error, MalformedRuleError):
            html_lines.append('<div class="error-context">')
            html_lines.append(f'<p><strong>Line {error.line_number}:</strong></p>')
            html_lines.append(f'<pre class="context-display">{html.escape(error.line)}</pre>')
            html_lines.append('</div>')

        html_lines.append('</div>')

        return '\n'.join(html_lines)

    def _generate_error_styles(self) -> str:
        """Generate inline CSS styles for error messages."""
        return """
<style>
.error-message {
    color: #cc0000;
    background-color: #ffeeee;
    border: 1px solid #cc0000;
    border-radius: 4px;
    padding: 10px;
    margin: 10px 0;
    font-family: Arial, sans-serif;
}

.error-text {
    font-weight: bold;
    margin: 5px 0;
}

.error-context {
    margin: 10px 0;
    padding: 8px;
    background-color: #f8f8f8;
    border-radius: 4px;
}

.context-display {
    font-family: monospace;
    background-color: #ffffff;
    padding: 8px;
    border: 1px solid #ddd;
    border-radius: 2px;
    overflow-x: auto;
}
</style>
"""
