"""
Custom exceptions for the Clinic Management System.
"""

from rest_framework.exceptions import APIException
from rest_framework import status


class NotFoundError(APIException):
    """
    Exception raised when a referenced patient, service, medicine,
    transaction, visit or setting does not exist.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Record not found.'
    default_code = 'not_found'

    def __init__(self, entity=None, detail=None, code=None):
        if detail is None and entity:
            detail = f'{entity.capitalize()} not found'
        self.entity = entity
        super().__init__(detail, code)


class InactiveServiceError(APIException):
    """
    Exception raised when a sale references a service that has been deactivated.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Service is not active.'
    default_code = 'inactive_service'


class InsufficientStockError(APIException):
    """
    Exception raised when a requested quantity exceeds the medicine's stock.
    Stock is never allowed to go negative.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Insufficient stock for this operation.'
    default_code = 'insufficient_stock'


class InvalidArgumentError(APIException):
    """
    Exception raised for values the business rules reject
    (negative target stock, non-positive quantity, unknown status).
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid argument.'
    default_code = 'invalid_argument'


class RecordInUseError(APIException):
    """
    Exception raised when deleting a record that other records still reference,
    or a transaction that has already been paid.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This record is in use and cannot be deleted.'
    default_code = 'record_in_use'
