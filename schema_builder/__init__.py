"""
Schema builder: an immutable field tree with copy-on-write edits, a preview
renderer, a template catalog and validation of generated data.
"""
