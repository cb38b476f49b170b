"""Dispatch pipeline — event handling and error rendering."""
