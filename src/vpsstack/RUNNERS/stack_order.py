"""
Dependency resolution for stacks to determine deployment order.
"""
from typing import Dict, Iterable, List, Optional


class StackOrderResolver:
    """
    Orders stacks so that each one is deployed after the stacks it depends on.
    """
    def resolve_order(self,
                      dependencies: Dict[str, Iterable[str]],
                      selected: Optional[Iterable[str]] = None) -> List[str]:
        """
        Determines the deployment order using a topological sort.

        Dependencies that are not selected are assumed to be deployed already
        and do not appear in the result.

        :param dependencies: Stack name to the names it depends on.
        :param selected: Stacks to deploy, all of them when omitted.
        :return: Stack names in the order they should be deployed.
        :raises ValueError: If a circular dependency is detected.
        """
        wanted = list(dependencies) if selected is None else list(selected)
        for name in wanted:
            if name not in dependencies:
                raise ValueError(f"Unknown stack '{name}'")

        ordered = []
        visited = set()
        processing = set()

        def visit(name):
            if name in processing:
                raise ValueError(f"Circular dependency detected involving {name}")
            if name not in visited:
                processing.add(name)
                for dep in dependencies.get(name, []):
                    if dep in dependencies:
                        visit(dep)
                processing.remove(name)
                visited.add(name)
                ordered.append(name)

        for name in wanted:
            visit(name)

        keep = set(wanted)
        return [name for name in ordered if name in keep]
