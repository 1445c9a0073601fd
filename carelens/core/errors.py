"""CareLens — Error taxonomy

DecodeError: uploaded bytes are not a readable image. Recovered inside the
  inference chain, never surfaced raw.
ProviderError: an external model/geodata/TTS call failed. Recovered by the
  next provider in the chain, or surfaced as 502 where there is none.
ConfigurationError: a required credential is missing. Surfaced as 503.
"""


class CareLensError(Exception):
    """Base class for CareLens errors."""


class DecodeError(CareLensError):
    pass


class ProviderError(CareLensError):
    def __init__(self, provider: str, detail: str, status_code: int = 0):
        super().__init__(f"{provider}: {detail}")
        self.provider = provider
        self.detail = detail
        self.status_code = status_code


class ConfigurationError(CareLensError):
    pass
