"""
AdComposer - Agentic audio advertisement composer

An LLM "creative director" searches a voice catalogue and writes voice, music
and sound-effect drafts into per-ad version streams, ready for rendering and
mixing.
"""

__version__ = "0.1.0"
__author__ = "AdComposer Team"
