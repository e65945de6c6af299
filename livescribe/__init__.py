"""
LiveScribe - Streaming dictation with spoken correction commands.

This package provides:
- Line framing and decoding of a live speech-recognition transport
- Provisional/final transcript reconciliation into a document
- Time-window classification of spoken correction commands
- LLM-backed targeted edits and general disfluency fixing
- Serialized edit dispatch with stale-result detection

Main entry point: python -m livescribe
"""

__version__ = "0.3.0"
