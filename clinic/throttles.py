"""Named rate limits; rates live in ``REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']``."""
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'

    def get_cache_key(self, request, view):
        # counted per client address whether or not a token is attached
        return self.cache_format % {'scope': self.scope, 'ident': self.get_ident(request)}


class BookingRateThrottle(UserRateThrottle):
    scope = 'booking'

    def allow_request(self, request, view):
        if request.method != 'POST':
            return True
        return super().allow_request(request, view)


class AssistantRateThrottle(UserRateThrottle):
    scope = 'assistant'
