"""File input and output: RIS parsing, report export, output paths."""
