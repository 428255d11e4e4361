"""
OTA Sync Client - Main Entry Point

This is the main entry point for the OTA Sync client.
Parses command-line arguments and runs a sync.

Author: OTA Sync Project
"""

import sys
import argparse
from pathlib import Path

from otasync.client.cli import run_cli_sync


def main(argv=None):
    """
    Main entry point for OTA Sync client.

    Downloads the index of <src>, compares it against <ref> and fetches
    only the files that differ, writing the rebuilt archive to <dst>.
    """
    parser = argparse.ArgumentParser(
        description='OTA Sync - download a tgz image, reusing unchanged local files',
        epilog='Example: otasync --src http://localhost:8090/image-1234.tgz --dst ./ --ref /'
    )

    parser.add_argument('--src', required=True,
                        help='Image download url (required argument, must end in .tgz)')
    parser.add_argument('--dst',
                        help='Save archive to <dst> directory, or to <dst> if it ends in .tgz (default ./)')
    parser.add_argument('--ref',
                        help='Reference directory (default /)')
    parser.add_argument('--config', type=Path,
                        help='Configuration file (default config.json next to the executable)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug output')

    args = parser.parse_args(argv)

    return run_cli_sync(
        args.src,
        destination=args.dst,
        reference_dir=args.ref,
        debug=args.debug,
        config_file=args.config
    )


if __name__ == '__main__':
    sys.exit(main())
