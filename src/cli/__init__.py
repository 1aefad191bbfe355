"""Command line interface for ShardScore."""
