"""
Fisheye Dewarp Examples

This package contains example scripts and tests for the fisheye dewarp algorithms:
- Dewarping with every projection type
- Parallel map generation benchmarks
- Tests for parameters, projection models, map generation, caching and the CLI
"""
