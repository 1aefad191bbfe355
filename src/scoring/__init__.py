"""Distributed partition scoring for ShardScore."""
