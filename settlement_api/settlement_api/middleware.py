import logging
import time

logger = logging.getLogger('audit')

# requests whose outcome moves money or custody
AUDITED_PREFIXES = ('/escrow/', '/payments/', '/trades/')


class SettlementAuditMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        user = getattr(request, 'user', None)
        user = user if user is not None and user.is_authenticated else "Anonymous"
        path = request.get_full_path()
        ip = self.get_client_ip(request)

        message = f"{user} - {request.method} {path} - {response.status_code} in {elapsed_ms}ms - IP: {ip}"
        if request.method != 'GET' and path.startswith(AUDITED_PREFIXES):
            logger.info(message)
        else:
            logger.debug(message)

        return response

    def get_client_ip(self, request):
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')
