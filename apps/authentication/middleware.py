import logging
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

logger = logging.getLogger(__name__)


class GraphQLJWTMiddleware:
    """Resolve ``request.user`` from a Bearer token on GraphQL requests.

    DRF views authenticate on their own; the GraphQL view only sees what the
    Django middleware stack put on the request.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith('/graphql/'):
            token = self.get_token_from_request(request)
            if token:
                auth = JWTAuthentication()
                try:
                    validated_token = auth.get_validated_token(token)
                    request.user = auth.get_user(validated_token)
                except (InvalidToken, TokenError, AuthenticationFailed) as exc:
                    # Continue as anonymous; resolvers reject it
                    logger.info(f"Ignoring invalid GraphQL bearer token: {exc}")

        return self.get_response(request)

    def get_token_from_request(self, request):
        header = request.META.get('HTTP_AUTHORIZATION')
        if header and header.startswith('Bearer '):
            return header.split(' ')[1].encode('utf-8')
        return None
