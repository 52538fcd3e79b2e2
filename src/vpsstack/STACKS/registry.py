"""
Registry of the available stack recipes, in the documented run order.
"""
from typing import Dict, List, Optional, Type

from .base import StackRecipe
from .adminer import AdminerRecipe
from .evolution import EvolutionRecipe
from .minio import MinioRecipe
from .pgadmin import PgAdminRecipe
from .portainer import PortainerRecipe
from .postgres import PostgresRecipe
from .redis import RedisRecipe
from .traefik import TraefikRecipe
from ..MODELS.settings import Settings

RECIPES: Dict[str, Type[StackRecipe]] = {
    cls.name: cls
    for cls in (
        TraefikRecipe,
        PortainerRecipe,
        PostgresRecipe,
        AdminerRecipe,
        RedisRecipe,
        PgAdminRecipe,
        MinioRecipe,
        EvolutionRecipe,
    )
}


def stack_names() -> List[str]:
    return list(RECIPES)


def get_recipe(name: str, settings: Optional[Settings] = None) -> StackRecipe:
    """
    Instantiates the recipe for a stack.

    :param name: Stack name, e.g. 'postgres'.
    :param settings: Shared settings passed to the recipe.
    :return: The recipe.
    :raises KeyError: If no recipe has that name.
    """
    try:
        recipe_cls = RECIPES[name]
    except KeyError:
        raise KeyError(f"Unknown stack '{name}'. Available: {', '.join(stack_names())}") from None
    return recipe_cls(settings)
