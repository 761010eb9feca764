from django.db import models


class UsedFormToken(models.Model):
    """Nonce of a dashboard form that has already been submitted"""
    nonce = models.CharField(max_length=64, unique=True)
    used_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return self.nonce

    class Meta:
        db_table = 'dashboard_used_form_tokens'
