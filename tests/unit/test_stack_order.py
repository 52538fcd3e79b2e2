import pytest

from vpsstack.RUNNERS.stack_order import StackOrderResolver
from vpsstack.STACKS.registry import RECIPES

DEPENDENCIES = {name: cls.depends_on for name, cls in RECIPES.items()}


def test_all_stacks_in_dependency_order():
    order = StackOrderResolver().resolve_order(DEPENDENCIES)
    assert order[0] == "traefik"
    for name, deps in DEPENDENCIES.items():
        for dep in deps:
            assert order.index(dep) < order.index(name)


def test_selection_keeps_only_selected():
    order = StackOrderResolver().resolve_order(DEPENDENCIES, ["evolution", "postgres"])
    assert order == ["postgres", "evolution"]


def test_unknown_stack():
    with pytest.raises(ValueError, match="Unknown stack 'mysql'"):
        StackOrderResolver().resolve_order(DEPENDENCIES, ["mysql"])


def test_cycle():
    with pytest.raises(ValueError, match="Circular dependency"):
        StackOrderResolver().resolve_order({"a": ["b"], "b": ["a"]})
