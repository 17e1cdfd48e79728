"""
Command line argument handling.
"""

import argparse
from pathlib import Path

from . import utils

class CustomHelpFormatter(argparse.RawTextHelpFormatter):
    """Custom formatter to improve the display of argument choices."""
    
    def _format_action_invocation(self, action):
        if not action.option_strings or action.nargs == 0:
            return super()._format_action_invocation(action)
        
        default = self._get_default_metavar_for_optional(action)
        args_string = self._format_args(action, default)
        
        # Format choices with proper spacing
        if action.choices:
            args_string = '{' + ', '.join(str(c) for c in action.choices) + '}'
            
        return ', '.join(action.option_strings) + ' ' + args_string

class ArgumentParser:
    """Argument parser for the ``mde`` command and its subcommands."""
    
    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog='mde',
            description="""mde - Media Duplicate Eraser

Find duplicate media files and remove the redundant copies. Exact copies are
found by content hash, visually similar images and videos by perceptual hash.
Deletion is all-or-nothing: if anything goes wrong, every file is restored.""",
            formatter_class=CustomHelpFormatter
        )
        self._add_global_arguments()
        subparsers = self.parser.add_subparsers(dest='command', metavar='COMMAND')
        subparsers.required = True
        self._add_scan_command(subparsers)
        self._add_clean_command(subparsers)
        self._add_erase_command(subparsers)
    
    def _add_global_arguments(self):
        self.parser.add_argument(
            '-v', '--verbose',
            action='count',
            default=0,
            help='Increase verbosity level (-v info, -vv verbose, -vvv debug)'
        )
        self.parser.add_argument(
            '-q', '--quiet',
            action='store_true',
            help='Suppress all output except errors'
        )
        self.parser.add_argument(
            '--version', 
            action='version',
            version=f'mde {utils.VERSION}'
        )
    
    def _add_scan_command(self, subparsers):
        scan = subparsers.add_parser(
            'scan',
            help='Scan a directory for duplicate media files',
            formatter_class=CustomHelpFormatter
        )
        scan.add_argument(
            'path',
            nargs='?',
            default='.',
            help='Directory to scan for duplicates (default: current directory)'
        )
        
        analysis_group = scan.add_argument_group('Analysis Options')
        analysis_group.add_argument(
            '-r', '--recursive', 
            action='store_true', 
            default=True,
            help='Scan directories recursively (default)'
        )
        analysis_group.add_argument(
            '--no-recursive', 
            dest='recursive', 
            action='store_false',
            help='Do not scan directories recursively'
        )
        analysis_group.add_argument(
            '--include-hidden',
            action='store_true',
            help="Include hidden files and directories (starting with '.')"
        )
        analysis_group.add_argument(
            '-m', '--media',
            type=str,
            choices=[m.value for m in utils.MediaFilter],
            default=utils.MediaFilter.ALL.value,
            help='Media types to scan. Options: all, images, videos (default: all)'
        )
        analysis_group.add_argument(
            '--threshold',
            type=int,
            default=utils.SIMILARITY_THRESHOLD,
            help=f'Maximum Hamming distance for perceptual duplicates (default: {utils.SIMILARITY_THRESHOLD})'
        )
        analysis_group.add_argument(
            '--hash-algorithm', 
            type=str, 
            choices=list(utils.HASH_ALGORITHMS),
            default=utils.DEFAULT_HASH_ALGORITHM,
            help=f'Perceptual hash algorithm to use (default: {utils.DEFAULT_HASH_ALGORITHM})'
        )
        analysis_group.add_argument(
            '-j', '--workers',
            type=int,
            default=1,
            help='Number of files hashed in parallel (default: 1)'
        )
        
        output_group = scan.add_argument_group('Output Options')
        output_group.add_argument(
            '-o', '--output', 
            type=str, 
            help=f'Output file for duplicates (JSON). Defaults to {utils.DUPLICATES_FILENAME} in the scanned directory'
        )
    
    def _add_clean_command(self, subparsers):
        clean = subparsers.add_parser(
            'clean',
            help=f'Remove the {utils.DUPLICATES_FILENAME} file from a directory'
        )
        clean.add_argument(
            'path',
            nargs='?',
            default='.',
            help=f'Directory containing {utils.DUPLICATES_FILENAME} to remove'
        )
    
    def _add_erase_command(self, subparsers):
        erase = subparsers.add_parser(
            'erase',
            help=f'Delete the duplicate files listed in {utils.DUPLICATES_FILENAME} (atomic operation)'
        )
        erase.add_argument(
            'path',
            nargs='?',
            default='.',
            help=f'Directory containing {utils.DUPLICATES_FILENAME}'
        )
    
    def parse_args(self, argv=None) -> argparse.Namespace:
        """Parse command line arguments."""
        args = self.parser.parse_args(argv)
        
        args.path = Path(args.path).resolve()
        
        if getattr(args, 'output', None):
            args.output = Path(args.output).resolve()
        
        if getattr(args, 'workers', 1) < 1:
            self.parser.error("--workers must be at least 1")
        if getattr(args, 'threshold', 0) < 0:
            self.parser.error("--threshold cannot be negative")
        
        return args
