"""
osd-deploy - Publish OSD package archives to the shared package store

Uploads the built packages for a build mode and target to Redis (through an
SSH tunnel to the deploy host by default) and notifies the reload service
once the whole batch is stored.
"""
import argparse
import sys

__version__ = "1.0.0"


def build_parser():
    """Build the top-level argument parser."""
    from osd_deploy.commands import deploy

    parser = argparse.ArgumentParser(
        prog='osd-deploy',
        description='Deploy OSD packages to the shared package store and notify the reload service.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=deploy.USAGE_EPILOG
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    deploy.setup_parser(parser)
    return parser


def main(argv=None):
    """Main CLI entry point"""
    from osd_deploy.commands import deploy

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        sys.exit(deploy.execute(args, parser=parser))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
