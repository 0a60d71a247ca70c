"""Command line client for the AgriLink monitoring service.

Run ``agrilink --help`` or ``python -m cli.app --help`` for the command list.
"""

__all__ = []
