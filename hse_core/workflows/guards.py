# hse_core/workflows/guards.py

from django.core.exceptions import PermissionDenied
from django.db import models


class WorkflowWriteGuardMixin(models.Model):
    """
    Prevent direct modification of lifecycle-controlled fields outside the executor.

    Models inheriting this mixin must transition via execute_transition().
    Direct .save() changes to WORKFLOW_FIELD are blocked; so are changes to any
    field listed in LOCKED_FIELDS once the row exists.

    Escape hatch:
      - pass _workflow_bypass=True to save(), OR
      - set instance._workflow_bypass = True
    Use sparingly (tests, data fixes, admin repair scripts).
    """

    WORKFLOW_FIELD = "status"
    LOCKED_FIELDS: tuple = ()
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        guarded = [f for f in (self.WORKFLOW_FIELD, *self.LOCKED_FIELDS) if f]

        if not bypass and self.pk is not None and guarded:
            stored = (
                self.__class__.objects.filter(pk=self.pk)
                .values(*guarded)
                .first()
            )
            if stored is not None:
                changed = [f for f in guarded if stored[f] != getattr(self, f, None)]

                if self.WORKFLOW_FIELD in changed:
                    raise PermissionDenied(
                        f"Direct modification of '{self.WORKFLOW_FIELD}' is forbidden. "
                        "Use workflow transition APIs."
                    )
                if changed:
                    raise PermissionDenied(
                        f"Fields {', '.join(sorted(changed))} are locked after creation."
                    )

        return super().save(*args, **kwargs)
