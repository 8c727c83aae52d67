# Copyright (c) Syntropy Systems
"""quorum command line interface."""
