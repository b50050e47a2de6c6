#!/usr/bin/env python3
"""
switchback CLI entry point

    switchback [--debug] [--config PATH] [--logfile PATH] run
    switchback check [WORD...]           validate config, list dictionaries, explain words
    switchback simulate "ghbdsn "        dry-run a typing script
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import signal
import sys
import traceback
from pathlib import Path

import switchback.log  # registers TRACE level and logger.trace()
from switchback.__version__ import __version__

DEFAULT_LOG_FILE = '~/.switchback.log'

# Global logger instance
logger = None


def setup_logging(debug: bool = False, log_file: str | None = None, console: bool = True) -> logging.Logger:
    """Setup logging to both console and file

    Args:
        debug: Enable debug level logging
        log_file: Path to log file (default: ~/.switchback.log)
        console: Also log to stderr
    """
    global logger

    if logger is not None:
        return logger

    logger = logging.getLogger('switchback')
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if log_file is None:
        log_file = os.path.expanduser(DEFAULT_LOG_FILE)

    fmt = logging.Formatter(
        '[%(asctime)s] %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler (rotate log file when it gets too large)
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(fmt)
        logger.addHandler(file_handler)
    except OSError as e:
        print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

    # Console handler (only warnings in production, all in debug)
    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
        console_handler.setFormatter(fmt)
        logger.addHandler(console_handler)

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='switchback',
        description='Fixes words typed in the wrong keyboard layout (English / Ukrainian)',
    )
    parser.add_argument('--debug', action='store_true', help='Enable debug mode with verbose logging')
    parser.add_argument('--config', type=str, default=None, help='Path to config file')
    parser.add_argument('--logfile', type=str, default=None,
                        help=f'Path to log file (default: {DEFAULT_LOG_FILE})')
    parser.add_argument('--version', action='version', version='%(prog)s ' + __version__)

    sub = parser.add_subparsers(dest='command')
    sub.add_parser('run', help='Run the correction daemon (default)')
    check = sub.add_parser('check', help='Validate the configuration, list dictionaries, explain words')
    check.add_argument('words', nargs='*', help='Words to run through the decision engine')
    check.add_argument('--layout', choices=['en', 'uk'], default='en', help='Layout the words were typed on')
    check.add_argument('--dict-dir', action='append', default=None, dest='dict_dirs',
                       help='Extra word-list directory (repeatable; default: configured dirs)')

    sim = sub.add_parser('simulate', help='Type a script into a simulated text field')
    sim.add_argument('script', help='Text to type; {fix} {force} {toggle} {bs} {left} {right} '
                                    '{en} {uk} {wait} are commands, "-" reads stdin')
    sim.add_argument('--layout', choices=['en', 'uk'], default='en', help='Active layout at start')
    sim.add_argument('--text', default='', help='Initial field content (caret at the end)')
    sim.add_argument('--dict-dir', action='append', default=None, dest='dict_dirs',
                     help='Extra word-list directory (repeatable; default: configured dirs)')
    sim.add_argument('--no-accessible', action='store_true',
                     help='Hide the document so corrections use keystroke navigation')
    return parser


def cmd_run(args, log: logging.Logger) -> int:
    from switchback.app import SwitchbackApp
    from switchback.core.events import EventType

    exit_reason = None
    app = None
    try:
        app = SwitchbackApp(debug=args.debug, config_path=args.config)

        def signal_handler(signum: int, frame) -> None:
            nonlocal exit_reason
            exit_reason = f"Signal {signal.Signals(signum).name}"
            log.info("Shutting down (%s)", exit_reason)
            app.event_bus.emit(EventType.APP_QUIT, exit_reason)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        app.run()
        exit_reason = exit_reason or "Normal completion"
        return 0

    except PermissionError as e:
        exit_reason = f"Permission denied: {e}"
        log.error("Permission error: %s", e)
        log.error("Input devices need the 'input' group: sudo usermod -a -G input $USER")
        log.debug(traceback.format_exc())
        return 1

    except RuntimeError as e:
        exit_reason = str(e)
        log.error("%s", e)
        log.debug(traceback.format_exc())
        return 1

    except Exception as e:
        exit_reason = f"Unhandled exception: {type(e).__name__}: {e}"
        log.error("Unhandled error: %s", e)
        log.debug(traceback.format_exc())
        return 1

    finally:
        if exit_reason:
            log.info("Exit reason: %s", exit_reason)


def cmd_check(args, out=None) -> int:
    from switchback.config import ConfigManager
    from switchback.core.decision import DecisionEngine
    from switchback.core.script import split_trailing_mapped
    from switchback.core.types import LanguagePrefix
    from switchback.intelligence.spell_oracle import DictionarySpellOracle

    out = out or sys.stdout
    cm = ConfigManager(args.config)
    status = 0
    if cm.reload():
        print(f"config: ok ({cm.config_path})", file=out)
    else:
        print(f"config: REJECTED, using defaults ({cm.config_path})", file=out)
        status = 1

    oracle = DictionarySpellOracle(args.dict_dirs or cm.get('dictionary_dirs'))
    for prefix in LanguagePrefix:
        tag = oracle.best_available_language(prefix)
        if tag is None:
            status = 1
        print(f"dictionary {prefix.value}: {tag or 'MISSING'}", file=out)

    decision = DecisionEngine(oracle)
    active = LanguagePrefix.parse(args.layout)
    for word in args.words:
        core, _ = split_trailing_mapped(word)
        verdict = decision.decide(core, active)
        target = f" -> {verdict.candidate.converted}" if verdict.candidate else ""
        print(f"{word}: {verdict.decision.name}{target} ({verdict.reason})", file=out)
    return status


def cmd_simulate(args, out=None) -> int:
    from switchback.config import load_config
    from switchback.core.types import LanguagePrefix
    from switchback.intelligence.spell_oracle import DictionarySpellOracle
    from switchback.simulation import Simulator

    out = out or sys.stdout
    config = load_config(args.config)
    script = sys.stdin.read() if args.script == '-' else args.script
    oracle = DictionarySpellOracle(args.dict_dirs or config['dictionary_dirs'])

    sim = Simulator(
        oracle,
        text=args.text,
        layout=LanguagePrefix.parse(args.layout),
        accessible=not args.no_accessible,
        config=config,
    )
    try:
        result = sim.run(script)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    print(result, file=out)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for switchback"""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or 'run'

    log = setup_logging(debug=args.debug, log_file=args.logfile, console=(command == 'run' or args.debug))
    if command == 'run':
        log.info("switchback %s started (pid %d, debug=%s)", __version__, os.getpid(), args.debug)

    if command == 'check':
        return cmd_check(args)
    if command == 'simulate':
        return cmd_simulate(args)
    return cmd_run(args, log)


if __name__ == '__main__':
    sys.exit(main())
