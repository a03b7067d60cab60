class OdinError(Exception):
    pass


class UpstreamFetchError(OdinError):
    """Network or HTTP failure talking to the market-data API (retries exhausted)."""


class OdinRateLimitError(UpstreamFetchError):
    pass
