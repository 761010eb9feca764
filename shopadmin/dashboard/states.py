"""
Screen states shared by entity forms.

    Idle -> Submitting -> (saved, navigated away) | Error(message)
    Idle -> Confirming -> Submitting -> ...
"""


class FormState:
    IDLE = 'idle'
    SUBMITTING = 'submitting'
    CONFIRMING = 'confirming'
    ERROR = 'error'

    __slots__ = ('kind', 'message')

    def __init__(self, kind, message=None):
        self.kind = kind
        self.message = message

    @property
    def is_busy(self):
        return self.kind == self.SUBMITTING

    def __eq__(self, other):
        if not isinstance(other, FormState):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __hash__(self):
        return hash((self.kind, self.message))

    def __repr__(self):
        if self.message:
            return f"FormState({self.kind!r}, {self.message!r})"
        return f"FormState({self.kind!r})"


Idle = FormState(FormState.IDLE)
Submitting = FormState(FormState.SUBMITTING)
Confirming = FormState(FormState.CONFIRMING)


def Error(message):
    return FormState(FormState.ERROR, message)
