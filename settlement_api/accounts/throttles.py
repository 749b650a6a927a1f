from rest_framework.throttling import SimpleRateThrottle


class LoginRateThrottle(SimpleRateThrottle):
    """Throttle token requests per e-mail address rather than per IP."""
    scope = 'login'

    def get_cache_key(self, request, view):
        email = request.data.get('email')

        if not email:
            return None

        return self.cache_format % {
            'scope': self.scope,
            'ident': str(email).lower().strip()
        }
