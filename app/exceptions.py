"""
Error taxonomy of the inventory engine.

Services raise these; the HTTP layer turns them into a structured
``{"success": false, "error": {"code", "message"}}`` body.
"""


class InventoryError(Exception):
    """Base class for every error the engine reports to its callers"""

    code = "inventory_error"
    status_code = 400

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(InventoryError):
    """Missing or out-of-range input"""

    code = "validation_error"
    status_code = 400


class NotFoundError(InventoryError):
    """Referenced entity doesn't exist or isn't visible to this business"""

    code = "not_found"
    status_code = 404


class IncompatibleUnitsError(InventoryError):
    code = "incompatible_units"
    status_code = 400

    def __init__(self, from_unit: str, to_unit: str):
        super().__init__(f"Cannot convert {from_unit} to {to_unit}: units belong to different categories")
        self.from_unit = from_unit
        self.to_unit = to_unit


class StateError(InventoryError):
    """Operation not allowed in the entity's current state"""

    code = "invalid_state"
    status_code = 409


class ConflictError(InventoryError):
    """Duplicate name, SKU or barcode within a business scope"""

    code = "conflict"
    status_code = 409
