"""
Main entry point for the ``mde`` command.
"""

import logging
import sys

import colorama

from .common.actions import clean_command, erase_command, scan_command
from .common.cli import ArgumentParser
from .common.console import Console
from .common.errors import MediaEraserError
from .common.models import ScanOptions
from .common.utils import MediaFilter, setup_logging

logger = logging.getLogger(__name__)

def run(args) -> int:
    """Dispatch parsed arguments to a command."""
    console = Console(quiet=args.quiet)
    
    try:
        if args.command == 'scan':
            options = ScanOptions(
                threshold=args.threshold,
                hash_algorithm=args.hash_algorithm,
                media=MediaFilter(args.media),
                workers=args.workers,
            )
            scan_command(args.path, options, args.recursive, args.include_hidden,
                         args.output, console)
        elif args.command == 'clean':
            clean_command(args.path, console)
        elif args.command == 'erase':
            erase_command(args.path, console)
    except (MediaEraserError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        console.error(str(e))
        return 1
    
    return 0

def main(argv=None) -> int:
    """Main entry point for the script."""
    parser = ArgumentParser()
    args = parser.parse_args(argv)
    
    setup_logging(args.verbose, args.quiet)
    colorama.just_fix_windows_console()
    
    return run(args)

if __name__ == "__main__":
    sys.exit(main())
