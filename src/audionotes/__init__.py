"""
Audio Notes: recorded audio to emailed transcripts and structured notes

A small FastAPI service that queues browser recordings, transcribes them with
an external speech-to-text process, optionally summarizes them with a
generative model, renders PDFs and emails them to the submitter.
"""

__version__ = "0.1.0"
__author__ = "Audio Notes Team"
__description__ = "Audio transcription and note generation service"
