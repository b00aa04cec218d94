from .aliases import AliasEntry, AliasRegistry, JoinPlan, JoinSpec, RelationResolver
from .ast import (
    AndCondition,
    ColumnSelection,
    Comparison,
    FieldCondition,
    FieldsCondition,
    IncludeNode,
    NotCondition,
    OrComparison,
    OrCondition,
    RelationCondition,
    RelationSelection,
    parse_inclusion,
    parse_predicate,
    parse_selection,
)
from .compiler import CompiledPredicate, PredicateCompiler, compile_predicate
from .exceptions import (
    AliasConflictError,
    EntityNotRegisteredError,
    FieldNotFoundError,
    MultipleEntitiesFoundError,
    NoEntityFoundError,
    ProjectionRelationNotIncludedError,
    QueryableError,
    RelationNotFoundError,
    RepositoryNotRegisteredError,
    UnsupportedOperatorError,
    ValidationError,
)
from .materializer import materialize
from .metadata import EntityMetadata, MetadataRegistry, RelationMetadata
from .operators import LogicalOperator, QueryOperator
from .operators_sql import DEFAULT_REGISTRY, build_default_registry
from .options import QueryableOptions
from .plan import ProjectionPlan, RelationProjection
from .projection import ProjectionPlanner
from .query_spec import CompiledQuery, OrderClause, QuerySpec, compile_query_spec
from .results import PagedResult
from .strategy import FilterOperator, FilterOperatorRegistry, ParameterBinder

__all__ = [
    # Operators / operator table
    "QueryOperator",
    "LogicalOperator",
    "FilterOperator",
    "FilterOperatorRegistry",
    "ParameterBinder",
    "DEFAULT_REGISTRY",
    "build_default_registry",
    # Metadata
    "EntityMetadata",
    "RelationMetadata",
    "MetadataRegistry",
    # Trees
    "Comparison",
    "OrComparison",
    "FieldCondition",
    "RelationCondition",
    "AndCondition",
    "OrCondition",
    "NotCondition",
    "FieldsCondition",
    "ColumnSelection",
    "RelationSelection",
    "IncludeNode",
    "parse_predicate",
    "parse_selection",
    "parse_inclusion",
    # Compilation
    "AliasEntry",
    "AliasRegistry",
    "JoinPlan",
    "JoinSpec",
    "RelationResolver",
    "CompiledPredicate",
    "PredicateCompiler",
    "compile_predicate",
    "ProjectionPlan",
    "ProjectionPlanner",
    "RelationProjection",
    "materialize",
    "QuerySpec",
    "CompiledQuery",
    "OrderClause",
    "compile_query_spec",
    # Configuration / results
    "QueryableOptions",
    "PagedResult",
    # Exceptions
    "QueryableError",
    "ValidationError",
    "UnsupportedOperatorError",
    "RelationNotFoundError",
    "FieldNotFoundError",
    "ProjectionRelationNotIncludedError",
    "AliasConflictError",
    "NoEntityFoundError",
    "MultipleEntitiesFoundError",
    "EntityNotRegisteredError",
    "RepositoryNotRegisteredError",
]
