"""
Core frame selection logic.

This module is framework-agnostic - it doesn't import FastAPI, ffmpeg
wrappers, or settings. Sampling and thumbnail selection depend only on
small protocols, so they can be tested with in-memory fakes.
"""
