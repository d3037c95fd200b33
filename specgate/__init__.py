"""Governance gate between an untrusted specification generator and the build."""
