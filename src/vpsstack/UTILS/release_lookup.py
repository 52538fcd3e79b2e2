"""
Lookup of the latest stable release tag of an image published on GitHub.
"""
import json
import logging
from urllib.request import urlopen, Request
from urllib.error import URLError

logger = logging.getLogger(__name__)

GITHUB_LATEST_RELEASE = "https://api.github.com/repos/{repo}/releases/latest"
DEFAULT_TRAEFIK_VERSION = "v3.0"


def latest_release_tag(repo: str, fallback: str, timeout: float = 10.0) -> str:
    """
    Get the tag of the latest GitHub release of a repository.

    Args:
        repo: Repository in `owner/name` form, e.g. 'traefik/traefik'.
        fallback: Tag returned when the API cannot be reached or answers nothing useful.
        timeout: Request timeout in seconds.

    Returns:
        The release tag, e.g. 'v3.1.2'.
    """
    request = Request(GITHUB_LATEST_RELEASE.format(repo=repo))
    request.add_header("Accept", "application/vnd.github+json")
    try:
        with urlopen(request, timeout=timeout) as response:
            data = json.loads(response.read().decode())
    except (URLError, OSError, ValueError) as e:
        logger.warning("Could not fetch the latest %s release: %s. Using %s", repo, e, fallback)
        return fallback

    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not tag or tag == "null":
        logger.warning("No release tag found for %s. Using %s", repo, fallback)
        return fallback
    return tag


def latest_traefik_version() -> str:
    """Latest stable Traefik tag, falling back to v3.0."""
    return latest_release_tag("traefik/traefik", DEFAULT_TRAEFIK_VERSION)
