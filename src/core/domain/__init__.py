"""Domain types and errors.

Pure data structures (Pydantic v2) and the error taxonomy. Nothing here
performs I/O: no HTTP, no processes, no CLI.
"""
