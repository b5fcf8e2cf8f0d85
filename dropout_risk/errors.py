"""Error types raised by the scoring pipeline and mapped to HTTP responses."""


class RiskDashboardError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__


class InvalidRequest(RiskDashboardError):
    """No students specified for prediction"""
    status_code = 400


class StoreReadFailure(RiskDashboardError):
    """Failed to load students from the record store"""


class StoreWriteFailure(RiskDashboardError):
    """Failed to write to the record store"""


class MalformedRow(RiskDashboardError):
    """Row is missing a required field"""
    status_code = 400

    def __init__(self, line_number, message=None):
        super().__init__(message)
        self.line_number = line_number


class EmptyFile(RiskDashboardError):
    """File must contain header row and at least one data row"""
    status_code = 400


class NoValidRecords(RiskDashboardError):
    """No valid student records found in the file"""
    status_code = 400
