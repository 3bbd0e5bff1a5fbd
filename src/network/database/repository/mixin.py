from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar, Union

from loguru import logger
from pydantic import BaseModel as PydanticModel
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, MultipleResultsFound, NoResultFound
from sqlalchemy.orm import Query, Session
from sqlalchemy.sql.elements import BinaryExpression, ColumnElement, UnaryExpression

from src.common.utils import split_every
from src.network.database.repository.exceptions import (
    MultipleRepositoryObjectsFound,
    PreventingModelTruncation,
    RepositoryObjectNotFound,
)
from src.network.database.session import db

if TYPE_CHECKING:
    from src.common.model import BaseModel


class BaseQueryManager:
    def __init__(self, model: Type['BaseModel']) -> None:  # type: ignore[type-arg]
        self.model = model

    def get_query(self, *clauses: Any, **specification: Any) -> 'Query[BaseModel]':  # type: ignore[type-arg]
        query = self.model._get_session().query(self.model)
        for clause in clauses:
            query = query.where(clause)
        for key, value in specification.items():
            query = query.where(getattr(self.model, key) == value)
        return query


ReadDomainType = TypeVar('ReadDomainType', bound=PydanticModel)
CreateDomainType = TypeVar('CreateDomainType', bound=PydanticModel)


class RepositoryMixin(Generic[ReadDomainType, CreateDomainType]):
    """
    Database access layer. All interaction with the database should be routed
    through this layer. Public interfaces accept pydantic domains built with
    from_attributes so model -> domain mapping is a single validate call
    """

    __create_domain__: Type[CreateDomainType] = NotImplemented
    __read_domain__: Type[ReadDomainType] = NotImplemented
    query_manager: Type[BaseQueryManager] = BaseQueryManager

    @classmethod
    def _get_session(cls) -> Session:
        return db.session

    @classmethod
    def get_query(cls, *clauses: Any, **specification: Any) -> 'Query[BaseModel]':  # type: ignore[type-arg]
        return cls.query_manager(cls).get_query(*clauses, **specification)  # type: ignore[arg-type]

    @classmethod
    def get(cls, *clauses: Union[BinaryExpression[Any], ColumnElement[bool]], **specification: Any) -> ReadDomainType:
        instance = cls._get(*clauses, **specification)

        return cls._to_domain(instance)

    @classmethod
    def get_or_none(cls, *clauses: Any, **specification: Any) -> ReadDomainType | None:
        try:
            instance = cls._get(*clauses, **specification)
        except RepositoryObjectNotFound:
            return None

        return cls._to_domain(instance)

    @classmethod
    def _get(cls, *clauses: Any, **specification: Any) -> 'BaseModel[Any, Any]':
        try:
            return cls.get_query(*clauses, **specification).one()
        except MultipleResultsFound:
            raise MultipleRepositoryObjectsFound(f'Multiple results found for {cls.__name__}: {specification}!')
        except NoResultFound:
            raise RepositoryObjectNotFound(f'{cls.__name__}: {specification} not found!')

    @classmethod
    def list(
        cls,
        *clauses: Any,
        ordering: Optional[List[Union[str, UnaryExpression]]] = None,  # type: ignore[type-arg]
        **specification: Any,
    ) -> List[ReadDomainType]:
        query = cls.get_query(*clauses, **specification)
        if ordering:
            orders = cls._parse_ordering(ordering)
            query = query.order_by(*orders)
        return [cls._to_domain(obj) for obj in query]

    @classmethod
    def list_attribute(cls, attribute: str, *clauses: Any, **specification: Any) -> List[Any]:
        query = cls.get_query(*clauses, **specification).with_entities(getattr(cls, attribute))

        return [values_list[0] for values_list in query]

    @classmethod
    def count(cls, *clauses: Any, **specification: Any) -> int:
        query = cls.get_query(*clauses, **specification)
        return int(query.count())

    @classmethod
    def create(cls, domain_obj: CreateDomainType) -> ReadDomainType:
        model_instance = cls(**domain_obj.model_dump())
        cls._get_session().add(model_instance)
        try:
            cls._get_session().flush([model_instance])
        except IntegrityError:
            cls._get_session().rollback()
            raise

        return cls._to_domain(model_instance)  # type: ignore[arg-type]

    @classmethod
    def bulk_create(cls, domain_objs: Sequence[CreateDomainType], chunk_size: int = 1000) -> int:
        """
        Bulk create in chunks
        """
        # Ignore empty lists
        if len(domain_objs) == 0:
            return 0

        for chunk in split_every(domain_objs, chunk_size):
            mappings = [domain_obj.model_dump() for domain_obj in chunk]
            try:
                # executemany form so python side defaults (ids) run per row
                cls._get_session().execute(insert(cls), mappings)
            except IntegrityError:
                cls._get_session().rollback()
                raise
        return len(domain_objs)

    @classmethod
    def delete(cls, *clauses: Union[BinaryExpression[Any], ColumnElement[bool]], **specification: Any) -> int:
        if specification:
            logger.warning(f'specification kwargs for {cls.__name__}.delete is deprecated please dont use!')

        if not clauses and not specification:
            raise PreventingModelTruncation(f'Must pass clauses to avoid truncating {cls.__name__}')

        try:
            return cls.get_query(*clauses, **specification).delete(synchronize_session=False)
        except IntegrityError:
            cls._get_session().rollback()
            raise

    @classmethod
    def _parse_ordering(
        cls, ordering: List[Union[str, 'UnaryExpression[Any]']] | None = None
    ) -> List['UnaryExpression[Any]']:
        """
        Parses str references for a field like:
        ['-date', 'user_id']
        """
        order_expressions = []
        for order in ordering or []:
            if isinstance(order, str):
                if order[0] == '-':
                    order_expressions.append(getattr(cls, order[1:]).desc())
                else:
                    order_expressions.append(getattr(cls, order).asc())
            else:
                # Assume already an expression
                order_expressions.append(order)

        return order_expressions

    @classmethod
    def _to_domain(cls, model_instance: 'BaseModel[Any, Any]') -> ReadDomainType:
        return cls.__read_domain__.model_validate(model_instance)  # type: ignore[no-any-return]

