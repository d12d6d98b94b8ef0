#!/usr/bin/env python3
"""
TRANSMUTE Command-Line Interface

Loads a vocabulary file and a rule file, then rewrites comma-separated
inputs read from the command line, from stdin, or interactively.

Usage:
    transmute alchemy.attributes alchemy.rules                 # Read one line from stdin
    transmute alchemy.attributes alchemy.rules -i "water,fire" # One-shot
    transmute alchemy.attributes alchemy.rules -v              # Verbose diagnostics
    transmute alchemy.attributes alchemy.rules --interactive   # REPL
    cat inputs.txt | transmute alchemy.attributes alchemy.rules

Output:
    One "name:count" line per attribute present in the result, or
    "Failed to substitute." when the rules never settle.

REPL Commands:
    :help              Show help
    :vocab             List attributes with their ids
    :rules             List loaded rules
    :verbose on|off    Toggle verbose diagnostics
    :trace on|off      Toggle tracing
    :quit              Exit
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .diagnostics import DiagnosticSink, StreamSink
from .engine import MAX_ITERATIONS, ResultType, RewriteEngine, SubstitutionEngine

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

FAILURE_TEXT = "Failed to substitute."


def format_result(result: ResultType) -> str:
    """Render a result the way the console prints it."""
    if not result:
        return FAILURE_TEXT
    return "\n".join(result)


class TransmuteCompleter:
    """Tab completer for the REPL: commands and attribute names."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":vocab", ":rules", ":verbose", ":trace",
    ]

    TOGGLE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'TransmuteREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> List[str]:
        line = line.lstrip()

        if line.startswith(":verbose ") or line.startswith(":trace "):
            return [t for t in self.TOGGLE_OPTIONS if t.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # Token context: complete attribute names after the last comma
        prefix = text.rsplit(",", 1)[-1].strip()
        return [name for name in self.repl.engine.vocabulary if name.startswith(prefix)]


class TransmuteREPL:
    """Interactive REPL over a loaded engine."""

    def __init__(self, engine: RewriteEngine):
        self.engine = engine
        self.trace = False
        self.running = True
        self.failures = 0

        if HAS_READLINE:
            self.history_file = Path.home() / ".transmute_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = TransmuteCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            # Commas separate tokens, so they delimit completions too
            readline.set_completer_delims(" \t\n,")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError:
                pass

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip().lower() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "vocab":
            vocab = self.engine.vocabulary
            if not len(vocab):
                return "No attributes loaded"
            return "\n".join(f"{i}: {name}" for i, name in enumerate(vocab))

        elif cmd == "rules":
            rules = self.engine.rules.list_rules()
            if not rules:
                return "No rules loaded"
            return "\n".join(f"{i}. {r}" for i, r in enumerate(rules))

        elif cmd == "verbose":
            self.engine.verbose = self._toggle(arg, self.engine.verbose)
            return f"Verbose {'enabled' if self.engine.verbose else 'disabled'}"

        elif cmd == "trace":
            self.trace = self._toggle(arg, self.trace)
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    @staticmethod
    def _toggle(arg: str, current: bool) -> bool:
        if arg in ("on", "true", "1"):
            return True
        if arg in ("off", "false", "0"):
            return False
        return not current

    def help_text(self) -> str:
        """Return help text."""
        return """TRANSMUTE REPL Commands:
  :help              Show this help
  :vocab             List attributes with their ids
  :rules             List loaded rules in priority order
  :verbose on|off    Toggle verbose diagnostics
  :trace on|off      Toggle tracing
  :quit              Exit

Input:
  water, fire, fire  Rewrite a multiset (repeat a name for multiplicity)
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the text to print, or None.
        """
        stripped = line.strip()

        if not stripped or stripped.startswith("#"):
            return None

        if stripped.startswith(":"):
            return self.handle_command(stripped)

        result = self.engine.execute(line, trace=self.trace)
        if not result:
            self.failures += 1
        output = format_result(result)
        if self.trace and result.trace:
            output = f"{output}\n{result.trace.format('rules')}"
        return output

    def run(self):
        """Run the REPL loop."""
        print("TRANSMUTE - multiset rewriting")
        print(f"{len(self.engine.vocabulary)} attributes, {len(self.engine.rules)} rules")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                line = input("transmute> ")
                result = self.process_line(line)
                if result:
                    print(result)
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print()
                continue

        self.save_history()


class Runner:
    """Runs inputs through an engine and prints results."""

    def __init__(self, engine: RewriteEngine, trace: bool = False):
        self.engine = engine
        self.trace = trace

    def run_input(self, line: str) -> int:
        """
        Rewrite one comma-separated input and print the result.

        Returns:
            Exit code (0 for success, 1 if the rules did not settle)
        """
        result = self.engine.execute(line, trace=self.trace)
        print()
        print(format_result(result))
        if self.trace and result.trace:
            print(result.trace.format("verbose"))
        print()
        return 0 if result else 1

    def run_stdin(self) -> int:
        """
        Rewrite every input line from stdin.

        Returns:
            Exit code (0 if every input settled)
        """
        status = 0
        for line in sys.stdin:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if self.run_input(line.rstrip("\n")):
                status = 1
        return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transmute",
        description="TRANSMUTE - deterministic multiset rewriting",
        epilog="Examples:\n"
               "  transmute a.attributes a.rules -i 'water,fire'   One-shot\n"
               "  transmute a.attributes a.rules -v               Verbose, read stdin\n"
               "  transmute a.attributes a.rules --interactive    REPL\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument("attributes", help="Vocabulary file, one attribute per line")
    parser.add_argument("rules", help="Rule file, 'a, b -> c' per line")

    parser.add_argument(
        "-i", "--input",
        help="Comma-separated input tokens (default: read from stdin)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Dump loaded tables and log every rule application"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Print a trace of rule applications after each result"
    )

    parser.add_argument(
        "--max-iterations",
        type=int,
        default=MAX_ITERATIONS,
        help=f"Productive passes allowed before giving up (default: {MAX_ITERATIONS})"
    )

    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Start the REPL after loading"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def main(argv: Optional[List[str]] = None, sink: Optional[DiagnosticSink] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.max_iterations < 1:
        parser.error(f"--max-iterations must be positive, got {args.max_iterations}")

    if sink is None:
        sink = StreamSink()

    try:
        engine = SubstitutionEngine.from_files(
            args.attributes, args.rules,
            debug=args.verbose, sink=sink,
            verbose=args.verbose, max_iterations=args.max_iterations,
        )
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error loading tables: {e}", file=sys.stderr)
        return 1

    runner = Runner(engine, trace=args.trace)

    if args.input is not None:
        return runner.run_input(args.input)

    if args.interactive or sys.stdin.isatty():
        repl = TransmuteREPL(engine)
        repl.trace = args.trace
        repl.run()
        return 1 if repl.failures else 0

    return runner.run_stdin()


if __name__ == "__main__":
    sys.exit(main())
