import argparse

from casebook.commands.registry import COMMAND_MODULES, register_all


def test_registry_registers_expected_commands() -> None:
    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers(dest="command")

    register_all(sub)

    assert set(sub.choices.keys()) == {"validate", "migrate", "status", "reset", "serve"}


def test_registry_module_list_is_unique_and_stable() -> None:
    assert len(COMMAND_MODULES) == len(set(COMMAND_MODULES))
    assert COMMAND_MODULES[0] == "validate"
    assert COMMAND_MODULES[-1] == "serve"
