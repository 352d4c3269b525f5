"""Bootstrapping and editing the shorthand home directory."""

import subprocess

from shorthand import config
from shorthand.commands import Registry
from shorthand.config import (
    MAIN_REGISTRY_FILE,
    REGISTRIES_DIR,
    SETTINGS_FILE,
    VALID_EDITORS,
    VARIABLES_DIR,
    dump_registry,
)

DEFAULT_SETTINGS_YAML = """\
shorthand:
  editor: vim
  log_level: WARNING
  default_context: default

remote:
  api_url: https://api.github.com
  timeout: 10
  registry_files:
    - shorthand.yaml
    - shorthand.yml
"""


def run_init() -> None:
    """Bootstrap the home directory with default config files.

    Creates the directory layout, settings.yaml and a config.yaml seeded with
    example commands. Idempotent: never overwrites existing files.
    """
    home = config.home_dir()
    created_anything = False

    if not home.exists():
        home.mkdir(parents=True)
        print(f"Created {home}")
        created_anything = True

    for subdir in (VARIABLES_DIR, REGISTRIES_DIR):
        subdir_path = home / subdir
        if not subdir_path.exists():
            subdir_path.mkdir()
            print(f"Created {subdir_path}")
            created_anything = True

    settings_path = home / SETTINGS_FILE
    if not settings_path.exists():
        settings_path.write_text(DEFAULT_SETTINGS_YAML)
        print(f"Created {settings_path}")
        created_anything = True

    commands_path = home / MAIN_REGISTRY_FILE
    if not commands_path.exists():
        commands_path.write_text(dump_registry(Registry(commands=dict(config.DEFAULT_COMMANDS))))
        print(f"Created {commands_path}")
        created_anything = True

    if not created_anything:
        print(f"Already initialized: {home}")


def run_config(editor: str, target: str = "settings", context: str = "default") -> None:
    """Open a config file in the specified editor.

    Args:
        editor: Editor command to use (must be in VALID_EDITORS).
        target: "settings", "commands" (the primary registry) or "variables"
            (the variables of ``context``).
        context: Context whose variables file is opened for "variables".
    """
    if editor not in VALID_EDITORS:
        print(f"Unknown editor: {editor}. Must be one of {VALID_EDITORS}")
        return

    home = config.home_dir()
    if not home.exists():
        print(f"Config directory not found: {home}")
        print("Run 'shorthand init' first to create it.")
        return

    if target == "commands":
        path = home / MAIN_REGISTRY_FILE
    elif target == "variables":
        path = home / VARIABLES_DIR / f"{context}.yaml"
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("vars: {}\n")
    else:
        path = home / SETTINGS_FILE
    if not path.exists():
        print(f"Config file not found: {path}")
        print("Run 'shorthand init' first to create it.")
        return

    subprocess.run([editor, str(path)])
