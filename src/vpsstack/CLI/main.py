"""
Command Line Interface for vpsstack.
"""
import functools
import logging

import click

from ..MANAGERS.docker_client import DockerClient, DockerUnavailableError
from ..MANAGERS.docker_installer import DockerInstaller
from ..MANAGERS.environment_manager import EnvironmentManager, MissingAnswerError
from ..MANAGERS.host_provisioner import HostProvisioner
from ..MANAGERS.minio_provisioner import MinioProvisioner
from ..MANAGERS.resource_manager import SecretInUseError
from ..MANAGERS.stack_deployer import StackDeployer
from ..MODELS.settings import DockerSettings, HostSettings, Settings
from ..PARSERS.compose_parser import ComposeParser
from ..RUNNERS.command_runner import CommandError, CommandRunner
from ..STACKS.evolution import validate_minio_password
from ..STACKS.registry import RECIPES, get_recipe, stack_names

HANDLED_ERRORS = (
    CommandError,
    DockerUnavailableError,
    SecretInUseError,
    MissingAnswerError,
    PermissionError,
    TimeoutError,
    KeyError,
    ValueError,
)


def handle_errors(func):
    """Reports known failures as a one-line error and exit status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HANDLED_ERRORS as e:
            message = e.args[0] if isinstance(e, KeyError) and e.args else str(e)
            raise click.ClickException(message) from e
    return wrapper


def environment_from(ctx) -> EnvironmentManager:
    return EnvironmentManager(
        answers_files=list(ctx.obj['answers']),
        interactive=not ctx.obj['non_interactive'],
    )


@click.group()
@click.option('--output-dir', '-o', default='.', show_default=True,
              help='Directory where compose files are written')
@click.option('--answers', '-a', multiple=True, type=click.Path(exists=True, dir_okay=False),
              help='.env file with preset answers (KEY=value, repeatable)')
@click.option('--network', default='main-proxy', show_default=True, help='Shared overlay network')
@click.option('--non-interactive', is_flag=True, help='Fail instead of prompting for missing answers')
@click.option('--verbose', '-v', is_flag=True, help='Show every command executed')
@click.pass_context
def cli(ctx, output_dir, answers, network, non_interactive, verbose):
    """
    vpsstack - VPS hardening and Docker Swarm stack deployment.

    Prepares a fresh Ubuntu server and deploys Traefik, Portainer, Postgres,
    Redis, pgAdmin, MinIO, Adminer and Evolution API as Swarm stacks.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s", force=True)
    ctx.ensure_object(dict)
    ctx.obj['settings'] = Settings(output_dir=output_dir, network_name=network)
    ctx.obj['answers'] = answers
    ctx.obj['non_interactive'] = non_interactive


@cli.command('list')
def list_stacks():
    """List available stacks."""
    click.echo(f"{'STACK':12} {'FILE':16} {'DEPENDS ON':32} DESCRIPTION")
    click.echo("-" * 90)
    for name in stack_names():
        recipe_cls = RECIPES[name]
        deps = ", ".join(recipe_cls.depends_on) or "-"
        click.echo(f"{name:12} {name + '.yml':16} {deps:32} {recipe_cls.description}")


@cli.command()
@click.argument('stack')
@click.option('--dry-run', is_flag=True, help='Print the commands instead of running them')
@click.option('--render-only', is_flag=True, help='Only write the compose file')
@click.option('--reset', is_flag=True, help='Remove the stack and its volumes first (destroys data)')
@click.pass_context
@handle_errors
def deploy(ctx, stack, dry_run, render_only, reset):
    """Deploy a single stack."""
    recipe = get_recipe(stack, ctx.obj['settings'])
    if reset and not (dry_run or render_only or ctx.obj['non_interactive']):
        click.confirm(f"This deletes all data of the '{stack}' stack. Continue?", abort=True)
    deployer = StackDeployer(CommandRunner(dry_run=dry_run), environment_from(ctx),
                             ctx.obj['settings'], render_only=render_only)
    deployer.deploy(recipe, reset=reset)


@cli.command('deploy-all')
@click.argument('stacks', nargs=-1)
@click.option('--dry-run', is_flag=True, help='Print the commands instead of running them')
@click.option('--render-only', is_flag=True, help='Only write the compose files')
@click.pass_context
@handle_errors
def deploy_all(ctx, stacks, dry_run, render_only):
    """Deploy several stacks (all by default) in dependency order."""
    deployer = StackDeployer(CommandRunner(dry_run=dry_run), environment_from(ctx),
                             ctx.obj['settings'], render_only=render_only)
    deployer.deploy_many(list(stacks) or None)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@handle_errors
def show(file):
    """Summarize a generated compose file."""
    stack = ComposeParser().parse(file)
    click.echo(f"Stack: {stack.name}")
    for name, svc in stack.services.items():
        click.echo(f"  {name}: {svc.image}")
        for port in svc.ports:
            click.echo(f"    port {port.published} -> {port.target} ({port.mode})")
        for label in svc.deploy.labels:
            if label.startswith("traefik.http.routers.") and ".rule=" in label:
                click.echo(f"    {label.split('=', 1)[1]}")
    for section in ("networks", "volumes", "secrets", "configs"):
        names = getattr(stack, section)
        if names:
            click.echo(f"{section.capitalize()}: {', '.join(names)}")


@cli.group()
def host():
    """Prepare the server itself."""


@host.command('setup')
@click.option('--user', 'new_user', default='deploy', show_default=True, help='Sudo user to create')
@click.option('--ssh-port', default=2222, show_default=True, type=int)
@click.option('--swap-size', default='4G', show_default=True)
@click.option('--swarm-ports/--no-swarm-ports', default=True, show_default=True,
              help='Open the Swarm cluster ports in the firewall')
@click.option('--root', 'fs_root', default='/', hidden=True)
@click.option('--dry-run', is_flag=True, help='Print the commands instead of running them')
@click.pass_context
@handle_errors
def host_setup(ctx, new_user, ssh_port, swap_size, swarm_ports, fs_root, dry_run):
    """Harden a fresh server (run as root)."""
    settings = HostSettings(new_user=new_user, ssh_port=ssh_port, swap_size=swap_size,
                            open_swarm_ports=swarm_ports)
    HostProvisioner(CommandRunner(dry_run=dry_run), environment_from(ctx), settings,
                    root=fs_root, require_root=not dry_run).provision()


@host.command('docker')
@click.option('--advertise-addr', default='', help='Address other Swarm nodes use to reach this one')
@click.option('--dry-run', is_flag=True, help='Print the commands instead of running them')
@click.pass_context
@handle_errors
def host_docker(ctx, advertise_addr, dry_run):
    """Install Docker and initialize Swarm (run as the deploy user)."""
    settings = DockerSettings(network_name=ctx.obj['settings'].network_name, advertise_addr=advertise_addr)
    DockerInstaller(CommandRunner(dry_run=dry_run), settings).setup()


@cli.group()
def minio():
    """MinIO administration."""


@minio.command('provision')
@click.option('--stack', default='minio', show_default=True, help='Name of the MinIO stack')
@click.option('--bucket', default='evolution', show_default=True)
@click.option('--policy', 'policy_name', default='evolution-api-policy', show_default=True)
@click.option('--anonymous-download', is_flag=True, help='Allow public reads of the bucket')
@click.option('--timeout', default=300.0, show_default=True, type=float,
              help='Seconds to wait for the MinIO container')
@click.pass_context
@handle_errors
def minio_provision(ctx, stack, bucket, policy_name, anonymous_download, timeout):
    """Create a bucket, policy and user in a running MinIO stack."""
    env = environment_from(ctx)
    root_user = env.ask("minio_root_user", "Enter the MinIO ROOT username", default="root")
    root_password = env.ask("minio_root_password", "Enter the MinIO ROOT password", secret=True)
    user = env.ask("evolution_minio_user", "Enter the username to create", default="evolution-user")
    password = env.ask("evolution_minio_password", "Enter the password for this user (at least 20 chars)",
                       secret=True, validator=validate_minio_password)

    docker = DockerClient(CommandRunner())
    docker.require_available()
    provisioner = MinioProvisioner(docker, stack=stack, timeout=timeout)
    provisioner.provision(root_user, root_password, bucket, policy_name, user, password,
                          anonymous_download=anonymous_download)


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
