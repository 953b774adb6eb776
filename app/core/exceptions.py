class CRMError(Exception):
    """Base class for every error the lead core raises on purpose."""


class ValidationError(CRMError):
    """Input rejected before any store call (missing name, unknown stage...)."""


class StoreError(CRMError):
    """The record store (SQL, PocketBase, Supabase) failed or was unreachable."""


class RecordNotFound(StoreError):
    pass
