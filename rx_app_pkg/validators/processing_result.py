# rx_app_pkg/validators/processing_result.py


class ProcessingResult:
    """
    Uniform return envelope for service operations.

    validation_messages: field name -> list of messages; non-empty means the input was rejected.
    internal_errors: opaque storage/processing failures with no field attribution.
    data: output records.
    """

    def __init__(self):
        self.validation_messages = {}
        self.internal_errors = []
        self.data = []

    def is_valid(self):
        return not self.validation_messages

    def has_internal_errors(self):
        return bool(self.internal_errors)

    def has_errors(self):
        return not self.is_valid() or self.has_internal_errors()

    def add_validation_message(self, field, message):
        self.validation_messages.setdefault(field, []).append(message)

    def set_validation_messages(self, messages):
        self.validation_messages = {field: list(msgs) if isinstance(msgs, (list, tuple)) else [msgs]
                                    for field, msgs in messages.items()}

    def add_internal_error(self, message):
        self.internal_errors.append(message)

    def add_data(self, record):
        self.data.append(record)

    def add_processing_result(self, other):
        """Merges another result into this one."""
        for field, messages in other.validation_messages.items():
            for message in messages:
                self.add_validation_message(field, message)
        self.internal_errors.extend(other.internal_errors)
        self.data.extend(other.data)

    def to_dict(self):
        return {
            "validationErrors": self.validation_messages,
            "internalErrors": self.internal_errors,
            "data": self.data
        }

    def __repr__(self):
        return (f'<ProcessingResult valid={self.is_valid()} '
                f'internal_errors={len(self.internal_errors)} data={len(self.data)}>')
