"""Command-line surface: argument parsing and response rendering."""
