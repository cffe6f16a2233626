#!/usr/bin/env python3
"""
Main Entry Point

ghostwriter - long-form document generation with cooperating LLM roles
"""

from ghostwriter.main import main

if __name__ == "__main__":
    raise SystemExit(main())
