import hashlib

FINGERPRINT_SEPARATOR = "|"


def fingerprint(provider_id: str, source_lang: str, target_lang: str, text: str) -> str:
    """Derive the cache key for one translatable string.

    The provider and both languages are part of the key so that switching any of
    them never serves a translation produced under a different configuration.
    """
    payload = FINGERPRINT_SEPARATOR.join((provider_id, source_lang, target_lang, text))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
