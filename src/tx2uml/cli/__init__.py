"""
CLI module for tx2uml commands.

This module provides the command-line interface for tx2uml,
including the diagram and messages commands.
"""

from .main import main

__all__ = [
    'main',
    'diagram_command',
    'messages_command',
]


# Lazy imports to avoid circular dependencies
def diagram_command(args):
    """Execute the diagram command."""
    from .diagram import diagram_command as _diagram_command
    return _diagram_command(args)


def messages_command(args):
    """Execute the messages command."""
    from .messages import messages_command as _messages_command
    return _messages_command(args)
