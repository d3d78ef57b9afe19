"""
Command-line interface for latex-edit.
"""
