"""
Command-line interface: Typer app, Rich output and progress display.
"""
