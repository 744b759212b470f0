class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    VALIDATE_API_KEY = V1 + "/validate-api-key"
    TRANSCRIBE = V1 + "/transcribe"
    PROXY_AUDIO = V1 + "/proxy-audio"
    PROXY_DOWNLOAD = V1 + "/proxy-download"


class ExternalURIs:
    GROQ_MODELS = "/models"
    GROQ_TRANSCRIPTIONS = "/audio/transcriptions"
    GROQ_CHAT_COMPLETIONS = "/chat/completions"


BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
)
