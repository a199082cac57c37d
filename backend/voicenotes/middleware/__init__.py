"""
VoiceNotes Backend: Middleware Package
======================================

Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

The request id is assigned first so the access log line and every error
response of the same request carry it.
"""
