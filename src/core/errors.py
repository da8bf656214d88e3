class UniFundError(Exception):
    """Base class for failures raised by the donation and review workflows.

    ``user_message`` is safe to show to the donor or admin; the exception
    text itself may carry internal detail and is only meant for logs.
    """

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, *, entity_id: str | None = None,
                 operation: str | None = None, user_message: str | None = None):
        super().__init__(message)
        self.entity_id = entity_id
        self.operation = operation
        if user_message is not None:
            self.user_message = user_message


class ValidationError(UniFundError):
    """Missing required field, non-positive amount, empty rejection reason."""

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message, user_message=message)
        self.field = field


class StorageError(UniFundError):
    user_message = "We could not upload your file. Please try again."


class PersistenceError(UniFundError):
    user_message = "We could not save your changes. Please try again."


class GatewayError(UniFundError):
    user_message = "The payment was not completed."


class CampaignNotFoundError(UniFundError):
    user_message = "Campaign not found."


class InvalidTransitionError(UniFundError):
    user_message = "That action is not available right now."


class FlowBusyError(UniFundError):
    user_message = "Please wait for the current step to finish."
