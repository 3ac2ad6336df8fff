"""
Command-line interface for the Portability Engine.
"""
