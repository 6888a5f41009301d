# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for the graph engine.

These tests run the link, graph and impact components together against an
on-disk JSON artifact store.
"""
