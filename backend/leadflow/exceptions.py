"""Domain errors raised by the lead services."""


class LeadError(Exception):
    pass


class LeadNotFoundError(LeadError):
    def __init__(self, lead_id):
        super().__init__(f"Lead {lead_id} not found")
        self.lead_id = lead_id


class LeadStateError(LeadError):
    """Illegal status transition or edit of an immutable lead."""


class LeadValidationError(LeadError):
    """Field-level validation failure on an update."""

    def __init__(self, errors: list):
        self.errors = errors
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in errors))


class LeadConflictError(LeadError):
    """The lead was modified concurrently; reload and retry."""


class BackOfficeError(Exception):
    """A downstream back-office call failed."""
