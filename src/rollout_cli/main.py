"""CLI main entry point."""

from __future__ import annotations

from pathlib import Path

import click

from .config import DEFAULT_ENV_FILE, RolloutConfig, load_config
from .decorators import exits_on_failure
from .errors import HardFailure
from .formatters import print_app_table, print_check_results, print_node_table
from .rollout import (
    SYNC_ORDER,
    ClusterValidator,
    ControlPlaneInstaller,
    ImageMirrorInstaller,
    ImageRefreshTrigger,
    MachineSetProvisioner,
    MachineSetScaler,
    MasterDedicationGuard,
    PoolConfig,
    PullSecretUpdater,
    RootDeployer,
    StagedSyncOrchestrator,
    Step,
    StepSequencer,
    SyncPolicyToggler,
    configure_repo,
)
from .rollout.cluster import ICSP_DIR
from .rollout.deployer import ROOT_APP_FILE
from .rollout.installer import BOOTSTRAP_DIR
from .rollout.manifests import GITOPS_NAMESPACE
from .shared.logging import configure_logging, get_logger, level_for_verbosity
from .store import KIND_APPLICATION, KIND_APPLICATIONSET, KIND_NODE, ObjectStore, OcStore
from .store.status import app_converged

__version__ = "0.1.0"  # Defined here to avoid circular import

logger = get_logger(__name__)


def _config(ctx: click.Context) -> RolloutConfig:
    return ctx.obj["config"]


def _store(ctx: click.Context) -> ObjectStore:
    """Return the context's store, creating an OcStore on first use."""
    if ctx.obj.get("store") is None:
        ctx.obj["store"] = OcStore(kubeconfig=_config(ctx).kubeconfig)
    return ctx.obj["store"]


def _connect(ctx: click.Context) -> ObjectStore:
    """Verify the cluster session once per invocation."""
    store = _store(ctx)
    if not ctx.obj.get("server"):
        ctx.obj["server"] = store.whoami()
        click.echo(f"Connected to: {ctx.obj['server']}")
    return store


def _banner(title: str) -> None:
    click.echo(f"\n🚀 {title}\n")


@click.group()
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_ENV_FILE,
    show_default=True,
    help="KEY=VALUE file merged under the environment",
)
@click.option("--kubeconfig", default=None, help="Kubeconfig path")
@click.option(
    "--repo-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="GitOps repository root (default: current directory)",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write logs to a file instead of stderr",
)
@click.pass_context
def cli(
    ctx: click.Context,
    env_file: Path,
    kubeconfig: str | None,
    repo_root: Path | None,
    verbose: int,
    log_json: bool,
    log_file: Path | None,
) -> None:
    """Provision workers and roll out GitOps applications."""
    configure_logging(level_for_verbosity(verbose), log_file=log_file, json_output=log_json)

    config = load_config(env_file)
    if kubeconfig:
        config.kubeconfig = kubeconfig
    if repo_root:
        config.repo_root = repo_root

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj.setdefault("store", None)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"rollout version {__version__}")


@cli.command()
@click.pass_context
@exits_on_failure
def check(ctx: click.Context) -> None:
    """Verify cluster connection."""
    store = _connect(ctx)
    print_node_table(store.list(KIND_NODE))


def _pool_options(func):
    options = [
        click.option("--instance-type", default=None, help="Instance type"),
        click.option("--replicas", type=int, default=None, help="Replicas (without autoscaling)"),
        click.option("--az", default=None, help="Availability zone (default: auto-detected)"),
        click.option("--volume-size", type=int, default=None, help="Root volume size in GB"),
        click.option("--min", "min_replicas", type=int, default=None, help="Autoscaling minimum"),
        click.option("--max", "max_replicas", type=int, default=None, help="Autoscaling maximum"),
        click.option(
            "--autoscaling/--no-autoscaling", default=True, help="Create autoscalers (default on)"
        ),
        click.option("--dry-run", is_flag=True, help="Preview without applying"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _pool_config(ctx: click.Context, role: str, **overrides) -> PoolConfig:
    defaults = _config(ctx).pool(role)
    values = {k: v for k, v in overrides.items() if v is not None}
    return PoolConfig(
        role=role,
        instance_type=values.get("instance_type", defaults.instance_type),
        replicas=values.get("replicas", defaults.replicas),
        az=values.get("az", defaults.az),
        volume_size=values.get("volume_size", defaults.volume_size),
        min_replicas=values.get("min_replicas", defaults.min_replicas),
        max_replicas=values.get("max_replicas", defaults.max_replicas),
        autoscaling=values.get("autoscaling", True),
        dry_run=values.get("dry_run", False),
    )


def _provision(ctx: click.Context, config: PoolConfig) -> None:
    store = _connect(ctx)
    click.echo(f"Auto-discovering cluster values for {config.worker_role} pool...")
    MachineSetProvisioner(store, _config(ctx).repo_root).provision(config)


@cli.command()
@_pool_options
@click.pass_context
@exits_on_failure
def gpu(ctx: click.Context, **options) -> None:
    """Create GPU worker MachineSet (waits for node Ready)."""
    _provision(ctx, _pool_config(ctx, "gpu", **options))


@cli.command()
@_pool_options
@click.pass_context
@exits_on_failure
def cpu(ctx: click.Context, **options) -> None:
    """Create CPU worker MachineSet (waits for node Ready)."""
    _provision(ctx, _pool_config(ctx, "cpu", **options))


def _pull_secret(ctx: click.Context) -> None:
    config = _config(ctx)
    PullSecretUpdater(_connect(ctx)).update(config.quay_user, config.quay_token)


def _icsp(ctx: click.Context) -> None:
    store = _connect(ctx)
    ImageMirrorInstaller(store, _config(ctx).repo_root / ICSP_DIR).install()


def _dedicate_masters(ctx: click.Context) -> None:
    MasterDedicationGuard(_connect(ctx)).dedicate()


def _bootstrap(ctx: click.Context) -> None:
    store = _connect(ctx)
    ControlPlaneInstaller(store, _config(ctx).repo_root / BOOTSTRAP_DIR).install()
    click.echo("\n✓ Bootstrap complete!")


@cli.command("pull-secret")
@click.pass_context
@exits_on_failure
def pull_secret(ctx: click.Context) -> None:
    """Add quay.io/rhoai credentials to the cluster pull secret."""
    _pull_secret(ctx)


@cli.command()
@click.pass_context
@exits_on_failure
def icsp(ctx: click.Context) -> None:
    """Create ImageContentSourcePolicy (waits for node update)."""
    _icsp(ctx)


@cli.command("dedicate-masters")
@click.pass_context
@exits_on_failure
def dedicate_masters(ctx: click.Context) -> None:
    """Remove worker role from master nodes."""
    _dedicate_masters(ctx)


def _setup_steps(ctx: click.Context) -> list[Step]:
    return [
        Step("pull-secret", lambda: _pull_secret(ctx)),
        Step("icsp", lambda: _icsp(ctx)),
        Step("gpu", lambda: _provision(ctx, _pool_config(ctx, "gpu"))),
        Step("cpu", lambda: _provision(ctx, _pool_config(ctx, "cpu"))),
        Step("dedicate-masters", lambda: _dedicate_masters(ctx)),
    ]


def _run_pipeline(title: str, steps: list[Step]) -> None:
    _banner(title)
    result = StepSequencer(steps).run()
    if not result.success:
        raise HardFailure(f"Step '{result.failed_step}' failed: {result.error}")
    click.echo(f"\n✓ {title} complete!")


@cli.command()
@click.pass_context
@exits_on_failure
def setup(ctx: click.Context) -> None:
    """Run pull-secret, icsp, gpu, cpu and dedicate-masters in order."""
    _run_pipeline("Pre-GitOps setup", _setup_steps(ctx))


@cli.command()
@click.pass_context
@exits_on_failure
def bootstrap(ctx: click.Context) -> None:
    """Install GitOps operator + Argo CD."""
    _banner("GitOps bootstrap")
    _bootstrap(ctx)


@cli.command("all")
@click.pass_context
@exits_on_failure
def run_all(ctx: click.Context) -> None:
    """Run everything (setup + bootstrap)."""
    steps = _setup_steps(ctx) + [Step("bootstrap", lambda: _bootstrap(ctx))]
    _run_pipeline("Full setup", steps)
    click.echo("Next: Add components incrementally via git commits")


@cli.command()
@click.option("--timeout", type=int, default=None, help="Seconds to wait for the apps to appear")
@click.pass_context
@exits_on_failure
def deploy(ctx: click.Context, timeout: int | None) -> None:
    """Apply the root Application and wait for its child apps."""
    store = _connect(ctx)
    deployer = RootDeployer(store, _config(ctx).repo_root / ROOT_APP_FILE, SYNC_ORDER)
    if timeout is not None:
        deployer.app_timeout = timeout
    deployer.deploy()
    click.echo("Run 'rollout sync' to sync apps in dependency order.")


@cli.command()
@click.option("--timeout", type=int, default=None, help="Per-app health timeout in seconds")
@click.pass_context
@exits_on_failure
def sync(ctx: click.Context, timeout: int | None) -> None:
    """Sync apps one by one in dependency order (best effort)."""
    store = _connect(ctx)
    health_timeout = timeout if timeout is not None else _config(ctx).sync_timeout
    StagedSyncOrchestrator(store, SYNC_ORDER, health_timeout=health_timeout).run()


@cli.command()
@click.pass_context
@exits_on_failure
def status(ctx: click.Context) -> None:
    """Show Argo CD application status."""
    store = _connect(ctx)
    apps = store.list(KIND_APPLICATION, GITOPS_NAMESPACE)
    print_app_table(apps)
    if apps:
        converged = len([a for a in apps if app_converged(a)])
        click.echo(f"\n{converged}/{len(apps)} applications Synced + Healthy")


@cli.command()
@click.pass_context
@exits_on_failure
def validate(ctx: click.Context) -> None:
    """Full cluster validation."""
    report = ClusterValidator(_store(ctx)).validate()
    print_check_results(report.checks)
    if not report.passed:
        raise SystemExit(1)


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Do not prompt for confirmation")
@click.pass_context
@exits_on_failure
def clean(ctx: click.Context, yes: bool) -> None:
    """Delete all Argo CD applications and applicationsets (dangerous!)."""
    click.echo("This will delete all ArgoCD applications and applicationsets!")
    if not yes and not click.confirm("Are you sure?", default=False):
        click.echo("Aborted.")
        return

    store = _connect(ctx)
    apps = store.delete(KIND_APPLICATION, GITOPS_NAMESPACE)
    appsets = store.delete(KIND_APPLICATIONSET, GITOPS_NAMESPACE)
    click.echo(f"✓ Deleted {apps} applications and {appsets} applicationsets")


@cli.command("configure-repo")
@click.pass_context
@exits_on_failure
def configure_repo_cmd(ctx: click.Context) -> None:
    """Update repo URLs in applicationsets (GITOPS_REPO_URL, GITOPS_BRANCH)."""
    config = _config(ctx)
    result = configure_repo(config.repo_root, config.gitops_repo_url, config.gitops_branch)
    if not result.files:
        click.echo("No files needed changes")
        return
    click.echo(f"Replaced {result.old_url} -> {config.gitops_repo_url} ({config.gitops_branch})")
    for path in result.files:
        click.echo(f"  ✓ {path}")


@cli.command()
@click.option("--name", required=True, help="MachineSet name")
@click.option("--replicas", required=True, help="N, +N or -N")
@click.pass_context
@exits_on_failure
def scale(ctx: click.Context, name: str, replicas: str) -> None:
    """Scale a MachineSet."""
    store = _connect(ctx)
    previous, target = MachineSetScaler(store).scale(name, replicas)
    click.echo(f"✓ {name}: {previous} -> {target} replicas")


@cli.command()
@click.pass_context
@exits_on_failure
def refresh(ctx: click.Context) -> None:
    """Force pull latest nightly images."""
    ImageRefreshTrigger(_connect(ctx)).refresh()


@cli.command("sync-disable")
@click.pass_context
@exits_on_failure
def sync_disable(ctx: click.Context) -> None:
    """Disable auto-sync on all apps (for manual changes)."""
    result = SyncPolicyToggler(_connect(ctx)).set_automated(False)
    click.echo(f"Auto-sync disabled on {len(result.patched)} apps.")
    click.echo("You can now make manual changes.")
    if result.failed:
        click.echo(f"⚠ Could not patch: {', '.join(result.failed)}")
    click.echo("Re-enable with: rollout sync-enable")


@cli.command("sync-enable")
@click.pass_context
@exits_on_failure
def sync_enable(ctx: click.Context) -> None:
    """Re-enable auto-sync on all apps."""
    result = SyncPolicyToggler(_connect(ctx)).set_automated(True)
    click.echo(f"Auto-sync re-enabled on {len(result.patched)} apps.")
    if result.failed:
        click.echo(f"⚠ Could not patch: {', '.join(result.failed)}")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
