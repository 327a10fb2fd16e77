"""Operator-side badge console: layout model, editor, API client, generator and gallery.

Nothing in this package imports Django; it talks to the badge API over HTTP only.
"""
