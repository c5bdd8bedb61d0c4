from rest_framework import views

from ..middleware import ANONYMOUS
from ..services.ratelimit import RateLimiter


def rate_limit_headers(info):
    return {
        "X-RateLimit-Limit": str(info.limit),
        "X-RateLimit-Remaining": str(max(0, info.remaining)),
        "X-RateLimit-Reset": info.reset_at.isoformat(),
    }


class RateLimitedAPIView(views.APIView):
    """
    APIView that counts every request against the caller's quota before the
    handler runs and reports the quota in X-RateLimit-* headers.
    """

    rate_limit_scope = "default"
    rate_limiter = None

    def get_rate_limiter(self):
        if self.rate_limiter is None:
            return RateLimiter.from_settings(self.rate_limit_scope)
        return self.rate_limiter

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        identity = getattr(request, "caller_id", ANONYMOUS)
        self.rate_limit_info = self.get_rate_limiter().enforce(identity)

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        info = getattr(self, "rate_limit_info", None)
        if info is not None:
            for name, value in rate_limit_headers(info).items():
                response[name] = value
        return response
