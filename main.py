#!/usr/bin/env python3
"""
main.py - Quick-start entry point.

    python main.py run --input photo.jpg --output shapes.png

Or process a whole folder:

    python main.py batch --input-dir images --output-dir output --triangle
"""

from shape_anneal.cli import app

if __name__ == "__main__":
    app()
