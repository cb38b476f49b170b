"""Routing — compiled route table with O(path-depth) matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes. Each route carries an ordered
handler chain rather than a single handler.
"""
