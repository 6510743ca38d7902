"""Progression domain services: riddle chains, folder gating, answers, ranking.

HTTP routes and socket handlers import from the submodules here; nothing in
this package knows about request or response shapes.
"""
