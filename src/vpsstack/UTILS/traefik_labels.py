"""
Builders for Traefik's label-based routing convention on Swarm services.
"""
from typing import List, Optional


def router_labels(router: str,
                  domain: str,
                  port: int,
                  service: Optional[str] = None,
                  network: Optional[str] = None,
                  middlewares: Optional[str] = None,
                  resolver: str = "myresolver",
                  entrypoint: str = "websecure",
                  enable: bool = True) -> List[str]:
    """
    Labels routing HTTPS traffic for a host name to a service port.

    :param router: Name of the Traefik router.
    :param domain: Host name matched by the router rule.
    :param port: Container port Traefik forwards to.
    :param service: Name of the Traefik service, defaults to `<router>-svc`.
    :param network: Network Traefik uses to reach the service.
    :param middlewares: Comma separated middleware names.
    :param resolver: ACME certificate resolver.
    :param entrypoint: Traefik entrypoint.
    :param enable: Prepend `traefik.enable=true`.
    :return: The list of labels.
    """
    service = service or f"{router}-svc"
    prefix = f"traefik.http.routers.{router}"
    labels = []
    if enable:
        labels.append("traefik.enable=true")
    if network:
        labels.append(f"traefik.docker.network={network}")
    labels += [
        f"{prefix}.rule=Host(`{domain}`)",
        f"{prefix}.entrypoints={entrypoint}",
        f"{prefix}.tls=true",
        f"{prefix}.tls.certresolver={resolver}",
        f"{prefix}.service={service}",
    ]
    if middlewares:
        labels.append(f"{prefix}.middlewares={middlewares}")
    labels.append(f"traefik.http.services.{service}.loadbalancer.server.port={port}")
    return labels


def basic_auth_labels(middleware: str, users: str) -> List[str]:
    """
    Labels declaring a basicauth middleware; `users` must already be escaped.
    """
    return [f"traefik.http.middlewares.{middleware}.basicauth.users={users}"]
