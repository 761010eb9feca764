"""
Field validation shared by the catalog models, the API serializers and the
dashboard forms, so a value accepted by one layer is accepted by all of them.
"""
from urllib.parse import urlparse

from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator

# #RGB, #RGBA, #RRGGBB or #RRGGBBAA
HEX_COLOR = r'^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$'

hex_color_validator = RegexValidator(
    regex=HEX_COLOR,
    message='String must be a valid hex code',
)


def validate_image_url(value):
    """
    Accept any absolute http(s) URL with a host.

    Hosted asset URLs are whatever the asset host returns, so the host is not
    required to be a dotted domain name.
    """
    parts = urlparse(str(value))
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise ValidationError('Invalid url', code='invalid')
