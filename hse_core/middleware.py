# hse_core/middleware.py

from django.utils.deprecation import MiddlewareMixin
from django.contrib.auth.models import AnonymousUser

from .signals import set_current_user


class CurrentUserMiddleware(MiddlewareMixin):
    """
    Makes request.user available to model signals.

    Must run after AuthenticationMiddleware and tolerate unauthenticated
    requests. DRF token authentication happens later, in the view; views
    refresh the stored user once DRF has resolved it.
    """

    def process_request(self, request):
        user = getattr(request, "user", None)
        set_current_user(None if user is None or isinstance(user, AnonymousUser) else user)

    def process_response(self, request, response):
        set_current_user(None)
        return response

    def process_exception(self, request, exception):
        # the stored user never outlives its request
        set_current_user(None)
