"""Persistence layer: relational store access and in-memory fallbacks."""
