"""Release tracker for the Factorio headless Docker image.

Detects new stable/experimental releases, reconciles the tag manifest
(``buildinfo.json``), regenerates the README tag list, patches the
compose build arguments and commits the result.
"""

__version__ = "0.1.0"
