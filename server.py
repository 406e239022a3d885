import os
from flask import Flask, request, jsonify

from lr1_parser import (
    GeneratorConfig,
    GrammarError,
    GrammarParser,
    SymbolClassifier,
    build_lr1,
)
from visualization import HTMLTableGenerator, ErrorMessageFormatter

app = Flask(__name__)

# --- Configuration: defaults, overridable with LR1_* environment variables ---
app.config.from_mapping(
    CONFLICT_POLICY="overwrite",
    FIRST_STRATEGY="guarded",
)
app.config.from_prefixed_env("LR1")


def _generator_config(data):
    """Service defaults, overridden by fields of the request body."""
    return GeneratorConfig.from_mapping({
        'conflict_policy': data.get('conflict_policy') or app.config['CONFLICT_POLICY'],
        'first_strategy': data.get('first_strategy') or app.config['FIRST_STRATEGY'],
    })


def _grammar_error_response(error):
    app.logger.info("--- Grammar FAILED: %s ---", error)
    body = {
        "success": False,
        "error": str(error),
        "error_type": error.error_type,
        "error_html": ErrorMessageFormatter().format_grammar_error(error),
    }
    line_number = getattr(error, 'line_number', None)
    if line_number is not None:
        body["line_number"] = line_number
    return jsonify(body), 400


# --- Flask Endpoints ---

@app.route('/parse-grammar', methods=['POST'])
def parse_grammar():
    """
    Parse grammar text and return its productions and symbols.

    Production ids are the ones used by reduce actions in the parse table.
    """
    data = request.get_json(silent=True) or {}
    grammar_input = data.get('grammar')

    if not grammar_input:
        return jsonify({"success": False, "error": "No grammar provided",
                        "error_type": "missing_input"}), 400

    try:
        app.logger.info("--- Parsing Grammar ---")
        grammar = GrammarParser().parse(grammar_input)
        symbols = SymbolClassifier().classify(grammar.rules)
    except GrammarError as e:
        return _grammar_error_response(e)
    except Exception:
        app.logger.exception("--- UNEXPECTED Python Error ---")
        return jsonify({"success": False, "error": "Unexpected server error",
                        "error_type": "system_error"}), 500

    app.logger.info("--- Grammar Parsing SUCCEEDED: %d productions ---", len(grammar.rules))
    return jsonify({
        "success": True,
        "start_symbol": grammar.start_symbol,
        "productions": [
            {"id": p.id, "lhs": p.lhs, "rhs": list(p.rhs), "text": str(p)}
            for p in grammar.flattened()
        ],
        "terminals": symbols.terminals,
        "non_terminals": symbols.non_terminals,
    })


@app.route('/build-parse-table', methods=['POST'])
def build_parse_table():
    """
    Build the LR(1) automaton and parse table for grammar text.

    The response carries the automaton for diagram rendering, the table as
    columns and rows, and an HTML rendering of the table.
    """
    data = request.get_json(silent=True) or {}
    grammar_input = data.get('grammar')

    if not grammar_input:
        return jsonify({"success": False, "error": "No grammar provided",
                        "error_type": "missing_input"}), 400

    try:
        config = _generator_config(data)
    except ValueError as e:
        return jsonify({"success": False, "error": str(e),
                        "error_type": "invalid_config"}), 400

    try:
        app.logger.info("--- Building Parse Table (%s, %s) ---",
                        config.conflict_policy.value, config.first_strategy.value)
        result = build_lr1(grammar_input, config)
    except GrammarError as e:
        return _grammar_error_response(e)
    except Exception:
        app.logger.exception("--- UNEXPECTED Python Error ---")
        return jsonify({"success": False, "error": "Unexpected server error",
                        "error_type": "system_error"}), 500

    table = result.table
    table_info = {
        'states_count': len(result.automaton),
        'action_entries': sum(len(row) for row in table.action.values()),
        'goto_entries': sum(len(row) for row in table.goto.values()),
    }
    app.logger.info("--- Parse Table Building SUCCEEDED: %d states ---", table_info['states_count'])

    return jsonify({
        "success": True,
        "start_symbol": result.grammar.start_symbol,
        "automaton": result.automaton.to_dict(),
        "table": table.to_dict(),
        "parse_table_html": HTMLTableGenerator().generate_parse_table_html(table),
        "table_info": table_info,
    })


# --- Main Execution ---
if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    print("--- LR(1) Table Generator Server ---")
    print(f"Running on http://127.0.0.1:{port}")
    print("-" * 34)
    app.run(debug=False, port=port)
