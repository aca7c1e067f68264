"""Scoring domain services: aggregation, rounds, leaderboards and sync.

This package holds the score bookkeeping shared by HTTP routes and socket
handlers, keeping transport concerns separated from the scoring rules.
"""
