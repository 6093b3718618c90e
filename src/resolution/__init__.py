"""Artifact resolution core: identities, remote classification, checksums and the graph walker."""
