"""
ai/ - Extraction Layer
======================
Talks to Gemini: builds the extraction request for one image and
validates the structured response into domain models.
"""
