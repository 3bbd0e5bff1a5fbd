from src.common.exceptions import InternalException


class RepositoryObjectNotFound(InternalException):
    """No row matched a lookup that expects exactly one, e.g. an unknown user id."""

    default_detail = 'Object not found.'
    default_code = 'object_not_found'


class MultipleRepositoryObjectsFound(InternalException):
    """A single-row lookup matched several rows."""

    default_detail = 'Multiple objects found.'
    default_code = 'multiple_objects_found'


class PreventingModelTruncation(InternalException):
    """
    A delete was issued without any clauses. Replacing one user's usage
    must never wipe the whole table.
    """

    default_detail = 'Refusing to delete every row.'
    default_code = 'preventing_truncation'
