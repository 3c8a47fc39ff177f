from rest_framework.authentication import SessionAuthentication


class SessionPrincipalAuthentication(SessionAuthentication):
    """
    Django session login as the request principal.

    Stock SessionAuthentication has no challenge header, which makes DRF
    answer unauthenticated requests with 403; returning one turns them into 401.
    """

    def authenticate_header(self, request):
        return 'Session'
