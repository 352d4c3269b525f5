"""Entry point for python -m shorthand."""

import argparse
import logging
import sys

from shorthand import config
from shorthand.app import ShorthandApp
from shorthand.cli import run_config, run_init
from shorthand.config import Settings, load_home_settings
from shorthand.exceptions import CommandNotFoundError, ConfigError, ShorthandError
from shorthand.variables import ContextManager

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

SUBCOMMANDS = {
    "run",
    "add",
    "remove",
    "list",
    "which",
    "var",
    "unset",
    "vars",
    "context",
    "import",
    "import-repo",
    "unimport",
    "sync",
    "init",
    "config",
}


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="shorthand",
        description="Run command templates by short name, with per-context variables.",
        epilog="Any other first argument is treated as a command name: "
        "'shorthand logs my-pod' is 'shorthand run logs my-pod'.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run a command by name")
    run_parser.add_argument("--source", help="Registry to take the command from")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Print the resolved command instead of running it"
    )
    run_parser.add_argument("name", help="Command name")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, help="Call-time arguments")

    add_parser = subparsers.add_parser("add", help="Add a command to the main registry")
    add_parser.add_argument("name")
    add_parser.add_argument("template", help="Command template, e.g. 'kubectl get pods -n #1'")
    add_parser.add_argument("-d", "--description", help="Description shown in listings")

    remove_parser = subparsers.add_parser("remove", help="Remove a command from the main registry")
    remove_parser.add_argument("name")

    list_parser = subparsers.add_parser("list", help="List or search commands")
    list_parser.add_argument("query", nargs="?", default="")

    which_parser = subparsers.add_parser("which", help="Show every registry defining a command")
    which_parser.add_argument("name")

    var_parser = subparsers.add_parser("var", help="Set a variable in the current context")
    var_parser.add_argument("name", help="Variable name (e.g., #1)")
    var_parser.add_argument("value", help="Variable value")

    unset_parser = subparsers.add_parser("unset", help="Remove a variable from the current context")
    unset_parser.add_argument("name")

    subparsers.add_parser("vars", help="Show variables of the current context")

    context_parser = subparsers.add_parser("context", help="Switch or list contexts")
    context_parser.add_argument("name", nargs="?", help="Context to switch to")

    import_parser = subparsers.add_parser(
        "import", help="Import a config file from a local path or a GitHub repository"
    )
    import_parser.add_argument("source", help="Path to a config file, or owner/repo")

    import_repo_parser = subparsers.add_parser(
        "import-repo", help="Import every YAML config in a GitHub repository"
    )
    import_repo_parser.add_argument("repo", help="GitHub repository (owner/repo)")

    unimport_parser = subparsers.add_parser("unimport", help="Remove an imported config")
    unimport_parser.add_argument("source", help="Source name or repository checkout")

    sync_parser = subparsers.add_parser(
        "sync", help="Sync imported configs with their remote origins"
    )
    sync_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("init", help="Initialize the shorthand config directory")

    config_parser = subparsers.add_parser("config", help="Edit config files")
    config_parser.add_argument(
        "--editor",
        help="Editor to use (default: from settings or vim)",
    )
    config_parser.add_argument(
        "target",
        nargs="?",
        default="settings",
        choices=["settings", "commands", "variables"],
        help="Which config file to edit (default: settings)",
    )

    return parser


def normalize_argv(argv: list[str]) -> list[str]:
    """Route ``shorthand <name> ...`` to the run subcommand."""
    for i, arg in enumerate(argv):
        if arg in ("-v", "--verbose"):
            continue
        if arg.startswith("-") or arg in SUBCOMMANDS:
            return argv
        return [*argv[:i], "run", *argv[i:]]
    return argv


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def dispatch(app: ShorthandApp, args: argparse.Namespace) -> int:
    """Run one parsed subcommand against a loaded app."""
    if args.command == "run":
        return app.run_command(args.name, args.args, source=args.source, dry_run=args.dry_run)
    if args.command == "add":
        app.handle_add(args.name, args.template, args.description)
    elif args.command == "remove":
        app.handle_remove(args.name)
    elif args.command == "list":
        app.handle_list(args.query)
    elif args.command == "which":
        app.handle_which(args.name)
    elif args.command == "var":
        app.handle_var(args.name, args.value)
    elif args.command == "unset":
        app.handle_unset(args.name)
    elif args.command == "vars":
        app.handle_vars()
    elif args.command == "context":
        app.handle_context(args.name)
    elif args.command == "import":
        app.handle_import(args.source)
    elif args.command == "import-repo":
        app.handle_import_repo(args.repo)
    elif args.command == "unimport":
        app.handle_unimport(args.source)
    elif args.command == "sync":
        return app.handle_sync(assume_yes=args.yes)
    else:
        return app.browse()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = _build_parser()
    args = parser.parse_args(normalize_argv(sys.argv[1:] if argv is None else argv))

    if args.command == "init":
        run_init()
        return 0

    try:
        settings = load_home_settings()
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1
    configure_logging(settings, verbose=args.verbose)
    home = config.home_dir()

    if args.command == "config":
        editor = args.editor or settings.editor
        context = ContextManager(home, default=settings.default_context).current
        run_config(editor=editor, target=args.target, context=context)
        return 0

    app = ShorthandApp(settings=settings, home=home)
    try:
        app.load_config()
        return dispatch(app, args)
    except CommandNotFoundError as e:
        print(f"✗ {e}", file=sys.stderr)
        print("Use 'shorthand' without arguments to browse available commands.", file=sys.stderr)
        return 1
    except ShorthandError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
