"""Deploy packages command"""
import sys
from contextlib import ExitStack
from pathlib import Path

from osd_deploy.core import ConsoleLogger, RealFileSystemService, SystemTimeProvider
from osd_deploy.deploy import (
    DEFAULT_TARGET,
    DeploymentError,
    PackagePublisher,
    RedisPackageStore,
    RemoteHostFactory,
    SSHRemoteHost,
    SSHTunnel,
    UsageError,
    check_remote,
    resolve_target,
)
from osd_deploy.deploy.naming import read_version
from osd_deploy.deploy.targets import validate_build_mode
from osd_deploy.utils.config import load_config
from osd_deploy.utils.logging_config import configure_logging, current_log_file

USAGE_EPILOG = '''
Targets:
  frontend  - Deploy live_day.tar and live_thermal.tar
  gallery   - Deploy recording_day as default.tar
  all       - Deploy all variants (default)

Examples:
  osd-deploy dev                     # Deploy dev builds (all variants)
  osd-deploy production frontend     # Deploy production builds (frontend only)
  osd-deploy dev gallery             # Deploy dev builds (gallery only)
'''


def setup_parser(parser):
    """Setup argument parser for deploy command"""
    parser.add_argument(
        'build_mode',
        help="Build mode: 'dev' or 'production'"
    )
    parser.add_argument(
        'target',
        nargs='?',
        default=DEFAULT_TARGET,
        help="Target: 'frontend', 'gallery', or 'all' (default: all)"
    )
    parser.add_argument(
        '--project-root',
        type=Path,
        help='Directory holding VERSION, dist/ and .env (default: current directory)'
    )
    parser.add_argument(
        '--dist-dir',
        type=Path,
        help='Directory holding the built archives (default: <project-root>/dist)'
    )
    parser.add_argument(
        '--config',
        type=Path,
        help='YAML config file (default: <project-root>/deploy.yaml if present)'
    )
    parser.add_argument(
        '--server',
        help="Deploy host as user@host[:port], or local:// to skip SSH"
    )
    parser.add_argument(
        '--disk-copy',
        action='store_true',
        default=None,
        help='Also rsync each package to the remote OSD directory'
    )
    parser.add_argument(
        '--no-tunnel',
        action='store_true',
        help='Connect to the package store directly instead of through SSH'
    )
    parser.add_argument(
        '--log-dir',
        type=Path,
        help='Also write a log file to this directory'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show commands being run'
    )


def _validate_arguments(args):
    validate_build_mode(args.build_mode)
    resolve_target(args.target)


def execute(args, parser=None):
    """Execute deploy command"""
    configure_logging(verbose=args.verbose, log_dir=args.log_dir)
    logger = ConsoleLogger()

    try:
        _validate_arguments(args)

        config = load_config(
            project_root=args.project_root,
            config_path=args.config,
            dist_dir=args.dist_dir,
            disk_copy=args.disk_copy,
            store_via_ssh=False if args.no_tunnel else None,
        ).validate()

        if args.server:
            try:
                remote = RemoteHostFactory.from_server_string(
                    args.server,
                    connect_timeout=config.connect_timeout
                )
            except ValueError as e:
                raise UsageError(str(e)) from e
        else:
            remote = SSHRemoteHost(
                config.deploy_user,
                config.deploy_host,
                ssh_port=config.ssh_port,
                connect_timeout=config.connect_timeout
            )
        version = read_version(config.version_file)
        server = remote.destination if remote is not None else "local"

        logger.info("==========================================")
        logger.info("  OSD Package Deploy")
        logger.info("==========================================")
        logger.info(f"Build mode: {args.build_mode}")
        logger.info(f"Target: {args.target}")
        logger.info(f"Version: {version}")
        logger.info(f"Source: {config.dist_dir}")
        logger.info(f"Server: {server}")
        logger.info("")

        with ExitStack() as stack:
            store_host, store_port = config.redis_host, config.redis_port
            remote_verified = False
            if remote is not None and config.store_via_ssh:
                check_remote(remote, logger)
                remote_verified = True
                tunnel = stack.enter_context(SSHTunnel(remote, config.redis_host, config.redis_port))
                store_host, store_port = "127.0.0.1", tunnel.local_port
                logger.debug(
                    f"Tunnel 127.0.0.1:{store_port} -> {config.redis_host}:{config.redis_port} via {server}"
                )

            store = RedisPackageStore.connect(
                store_host,
                store_port,
                password=config.redis_password,
                db=config.redis_db,
                timeout=config.connect_timeout,
                key_prefix=config.key_prefix,
                channel=config.reload_channel,
            )
            stack.callback(store.close)

            publisher = PackagePublisher(
                store=store,
                remote=remote,
                filesystem=RealFileSystemService(),
                time_provider=SystemTimeProvider(),
                logger=logger,
                dist_dir=config.dist_dir,
                version_file=config.version_file,
                package_prefix=config.package_prefix,
                remote_osd_path=config.remote_osd_path,
                disk_copy=config.disk_copy,
                remote_verified=remote_verified,
            )
            result = publisher.publish(args.build_mode, args.target)

    except UsageError as e:
        if parser is not None:
            parser.print_usage(sys.stderr)
        logger.error(str(e))
        return 1
    except DeploymentError as e:
        logger.error(str(e))
        return 1

    logger.info("")
    logger.info("==========================================")
    logger.info(f"  Deploy Complete: {', '.join(result.batch.logical_names)}")
    logger.info("==========================================")
    log_file = current_log_file()
    if log_file is not None:
        logger.info(f"Log: {log_file}")
    return 0
