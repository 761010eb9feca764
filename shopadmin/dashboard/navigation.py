"""Navigation and toast collaborators for the dashboard screens"""
from django.contrib import messages
from django.shortcuts import redirect
from django.utils.cache import add_never_cache_headers


class Navigator:
    def push(self, path):
        raise NotImplementedError

    def refresh(self):
        raise NotImplementedError


class Notifier:
    def success(self, message):
        raise NotImplementedError

    def error(self, message):
        raise NotImplementedError


class RedirectNavigator(Navigator):
    """Records where the screen wants to go; the view turns it into a redirect"""

    def __init__(self):
        self.location = None
        self.stale = False

    def push(self, path):
        self.location = path

    def refresh(self):
        self.stale = True

    @property
    def navigated(self):
        return self.location is not None

    def response(self, fallback='/'):
        response = redirect(self.location or fallback)
        if self.stale:
            # the page we land on must be fetched again, not served from cache
            add_never_cache_headers(response)
        return response


class MessagesNotifier(Notifier):
    """Toasts through django.contrib.messages, shown on the next rendered page"""

    def __init__(self, request):
        self.request = request

    def success(self, message):
        messages.success(self.request, message)

    def error(self, message):
        messages.error(self.request, message)
