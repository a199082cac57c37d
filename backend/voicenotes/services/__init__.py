"""
VoiceNotes Backend: Services Layer
==================================

Service Inventory:
    - AIDelegate (abstract): transcription and summarization contract
    - GeminiService: AIDelegate backed by Google Gemini
    - AudioService: validation of uploaded audio before transcription
    - NoteService: note lifecycle, search/sort, summarize-and-persist
    - AuthService: signup, login, current user lookup

Services receive an ``AsyncSession`` per call and hold no per-request state.
They are built once by the application factory and reached through
``app.state``.
"""
