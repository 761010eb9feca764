"""
Single-use tokens for dashboard form posts.

Every rendered form carries a signed nonce. Saving the form consumes the
nonce by inserting it into a table with a unique constraint, so of several
posts of the same rendered form (a double click, a resent page) only the
first one reaches the endpoint, even when the posts run concurrently.
"""
import logging
import secrets
from datetime import timedelta

from django.core import signing
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import UsedFormToken

logger = logging.getLogger('shopadmin.dashboard')

FIELD_NAME = 'form_token'
SALT = 'shopadmin.dashboard.form'
MAX_AGE = 60 * 60 * 24


class InvalidFormToken(Exception):
    """The posted token is missing, tampered with, expired or issued to someone else"""


def issue_form_token(user):
    return signing.dumps({'user': user.pk, 'nonce': secrets.token_urlsafe(16)}, salt=SALT)


def consume_form_token(user, token):
    """
    Mark ``token`` as used.

    Returns:
        True for the first submit of the token, False for any later one

    Raises:
        InvalidFormToken: when the token cannot be trusted
    """
    if not token:
        raise InvalidFormToken('Missing form token')
    try:
        data = signing.loads(token, salt=SALT, max_age=MAX_AGE)
    except signing.BadSignature as e:
        logger.warning(f"Rejected form token for user {user.username}: {str(e)}")
        raise InvalidFormToken(str(e))
    if data.get('user') != user.pk:
        logger.warning(f"Rejected form token issued to user {data.get('user')} for user {user.username}")
        raise InvalidFormToken('Form token belongs to another user')

    try:
        with transaction.atomic():
            UsedFormToken.objects.create(nonce=data['nonce'])
    except IntegrityError:
        logger.info(f"Ignoring repeated submit by user {user.username}")
        return False

    UsedFormToken.objects.filter(used_at__lt=timezone.now() - timedelta(seconds=MAX_AGE)).delete()
    return True
