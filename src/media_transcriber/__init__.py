"""
Media transcription service built with FastAPI, exposing
- an upload endpoint that turns a video or audio file into a transcript,
- and a server-sent-events endpoint that reports per-upload progress.
"""

__version__ = "0.1.0"
