"""
neat
====

A local file-organization utility.

Features:
- Scan directory trees with size, date, name, regex and MIME filters
- Organize files by type, date, extension, camera, artist or template
- Find exact duplicates (verified byte-for-byte) and visually similar images
- Every move and delete is logged so the last batch can be undone

All processing occurs locally; nothing leaves the machine.
"""

__version__ = "0.1.0"
