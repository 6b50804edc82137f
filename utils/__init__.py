"""Helpers shared by the CLI and the store: field validators and output rendering."""
