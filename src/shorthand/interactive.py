"""Interactive prompts built on prompt_toolkit."""

from prompt_toolkit import prompt
from prompt_toolkit.completion import FuzzyWordCompleter
from prompt_toolkit.shortcuts import confirm as confirm_prompt

from shorthand.commands import SearchResult


def choose(options: list[str], message: str = "Which source should be used?") -> int | None:
    """Ask the user to pick one option. Returns its index, or None."""
    if not options:
        return None
    print(message)
    for i, option in enumerate(options, 1):
        print(f"  {i}) {option}")
    try:
        answer = prompt(f"Enter number (1-{len(options)}): ")
    except (KeyboardInterrupt, EOFError):
        return None
    try:
        choice = int(answer.strip())
    except ValueError:
        return None
    if 1 <= choice <= len(options):
        return choice - 1
    return None


def confirm(message: str) -> bool:
    """Yes/no question, defaulting to no on interrupt."""
    try:
        return confirm_prompt(message)
    except (KeyboardInterrupt, EOFError):
        return False


def select_command(commands: list[SearchResult], context: str) -> str | None:
    """Fuzzy-search the command list and return the chosen name."""
    names = [c.name for c in commands]
    meta = {c.name: c.description or c.template for c in commands}

    print()
    print(f"Command browser (context: {context})")
    for command in commands:
        print(f"  [{command.name}]  =>  {command.template}")
    print()

    completer = FuzzyWordCompleter(names, meta_dict=meta)
    try:
        answer = prompt(
            "Search and select command: ",
            completer=completer,
            complete_while_typing=True,
        )
    except (KeyboardInterrupt, EOFError):
        return None
    answer = answer.strip()
    return answer if answer in names else None
