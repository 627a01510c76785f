"""Data package for cmdai.

This subpackage contains static resources bundled with cmdai, most
notably the per-tool pattern rule tables under ``patterns/``.  The
tables are loaded by :func:`cmdai.patterns.load_rule_table`.
"""

__all__ = []
