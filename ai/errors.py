"""
ai/errors.py
------------
Errors raised by the extraction client.
Callers only need to tell configuration problems from everything else;
`user_message` is always safe to show to the end user.
"""

EXTRACTION_FAILED_MESSAGE = "無法從圖片中擷取資料，請稍後再試。"
MISSING_CREDENTIAL_MESSAGE = "缺少 Gemini API 金鑰，請檢查環境設定 (GEMINI_API_KEY)。"


class ExtractionError(Exception):
    """Extraction failed (transport, service or malformed response). Retryable."""

    def __init__(self, user_message: str = EXTRACTION_FAILED_MESSAGE):
        super().__init__(user_message)
        self.user_message = user_message


class MissingCredentialError(ExtractionError):
    """No API key is configured. Raised before any request is sent."""

    def __init__(self):
        super().__init__(MISSING_CREDENTIAL_MESSAGE)
