#!/usr/bin/env python3
"""
Main entry point for tx2uml

This module serves as the CLI entry point, handling argument parsing
and routing to the appropriate command implementations in the cli/ module.
"""

import sys
import argparse

from tx2uml import __version__
from .common import add_common_arguments
from .diagram import diagram_command
from .messages import messages_command


def main(argv=None):
    """Main entry point for tx2uml CLI."""
    parser = argparse.ArgumentParser(description='tx2uml - Ethereum transaction call diagrams')
    parser.add_argument('--version', '-v', action='version', version=f'%(prog)s {__version__}')

    # Create subparsers for different commands
    subparsers = parser.add_subparsers(dest='command', help='Commands')
    subparsers.required = True

    # diagram command
    diagram_parser = subparsers.add_parser('diagram', help='Generate a UML sequence diagram of a transaction')
    add_common_arguments(diagram_parser)
    diagram_parser.add_argument('--output-format', '-f', choices=['puml', 'png', 'svg'], help='Output file format (default: png)')
    diagram_parser.add_argument('--output-file', '-o', help="Output file, '-' for stdout (default: <tx_hash>.<format>)")
    diagram_parser.add_argument('--gas', '-g', action='store_true', help='Show gas used on messages and returns')
    diagram_parser.add_argument('--no-title', action='store_true', help='Leave out the title and caption')
    diagram_parser.add_argument('--save-config', action='store_true', help='Save the effective configuration to the config file')

    # messages command
    messages_parser = subparsers.add_parser('messages', help='List the messages of a transaction')
    add_common_arguments(messages_parser)
    messages_parser.add_argument('--gas', '-g', action='store_true', help='Show gas used on each message')

    args = parser.parse_args(argv)

    # Route commands to CLI modules
    if args.command == 'diagram':
        return diagram_command(args)
    elif args.command == 'messages':
        return messages_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
