import hashlib

import structlog

logger = structlog.get_logger()

ANONYMOUS = "anonymous"


def _bearer_token(request):
    header = request.headers.get("Authorization", "")
    kind, _, token = header.partition(" ")
    if kind.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


# Authentication happens upstream; this only names the caller for quotas
class CallerIdentityMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        key_id = request.headers.get("X-Api-Key-Id")
        if key_id:
            request.caller_id = f"key:{key_id}"
        else:
            token = _bearer_token(request)
            if token:
                digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
                request.caller_id = f"token:{digest}"
            else:
                request.caller_id = ANONYMOUS
        logger.debug("caller_identified", path=request.path, caller_id=request.caller_id)
        return self.get_response(request)
