"""EmailAddress value object for validated email addresses."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from marketplace.domain import marketplace

_FORBIDDEN_CHARACTERS = (";", ",", "(", ")", '"', ":", "<", ">", "[", "]", "\\")


@marketplace.value_object
class EmailAddress:
    """A structurally valid email address.

    Used to validate customer e-mails at registration and guest e-mails at
    checkout. Comparison is case-insensitive, so ``normalized`` is what gets
    stored and looked up.
    """

    address: String(required=True, max_length=254)

    @invariant.post
    def verify_email_address(self):
        email = self.address

        if any(ch.isspace() for ch in email) or email.count("@") != 1:
            raise ValidationError({"email": [f"Invalid email address: {email!r}"]})

        local_part, domain_part = email.split("@", 1)

        for part in (local_part, domain_part):
            if not part or part.startswith(".") or part.endswith(".") or ".." in part:
                raise ValidationError({"email": [f"Invalid email address: {email!r}"]})

        if "." not in domain_part:
            raise ValidationError({"email": [f"Invalid email address: {email!r}"]})

        for label in domain_part.split("."):
            if label.startswith("-") or label.endswith("-"):
                raise ValidationError({"email": [f"Invalid email address: {email!r}"]})

        if any(ch in email for ch in _FORBIDDEN_CHARACTERS):
            raise ValidationError({"email": [f"Invalid email address: {email!r}"]})

    @property
    def normalized(self) -> str:
        return self.address.strip().lower()
