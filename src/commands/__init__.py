"""
Command groups for the rankings CLI.
"""
