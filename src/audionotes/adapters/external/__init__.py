"""External service adapters: speech-to-text, note generation and Notion.

Kept free of imports so the transcription runner starts without loading
the web stack.
"""
