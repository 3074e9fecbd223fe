"""
Infrastructure layer - external tool integrations.

- ffmpeg: binary discovery, subprocess runner, duration probing and
  frame extraction

These wrappers translate between ffmpeg's command line and our domain models.
"""
