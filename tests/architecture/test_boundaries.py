from pytest_archon import archrule


def test_core_is_persistence_agnostic() -> None:
    """
    Parsing, compilation and materialization must not depend on SQLAlchemy.
    Only the persistence subpackage talks to the ORM.
    """
    (
        archrule("core_is_persistence_agnostic")
        .match("cqrs_ddd_queryable*")
        .exclude("cqrs_ddd_queryable.persistence*")
        .should_not_import("sqlalchemy*")
        .should_not_import("cqrs_ddd_queryable.persistence*")
        .check("cqrs_ddd_queryable")
    )


def test_operators_are_leaves() -> None:
    """
    Operator strategies render fragments; they know nothing about joins,
    aliases or query plans.
    """
    (
        archrule("operators_are_leaves")
        .match("cqrs_ddd_queryable.operators_sql*")
        .should_not_import("cqrs_ddd_queryable.aliases*")
        .should_not_import("cqrs_ddd_queryable.compiler*")
        .should_not_import("cqrs_ddd_queryable.query_spec*")
        .should_not_import("cqrs_ddd_queryable.projection*")
        .check("cqrs_ddd_queryable")
    )


def test_materializer_isolation() -> None:
    """
    The materializer reshapes rows; it must not reach back into compilation.
    """
    (
        archrule("materializer_isolation")
        .match("cqrs_ddd_queryable.materializer")
        .should_not_import("cqrs_ddd_queryable.compiler*")
        .should_not_import("cqrs_ddd_queryable.query_spec*")
        .should_not_import("cqrs_ddd_queryable.aliases*")
        .check("cqrs_ddd_queryable")
    )


def test_projection_plan_is_a_leaf() -> None:
    """
    The plan dataclasses are shared by planner, hydration and materializer;
    they depend on nothing else in the package.
    """
    (
        archrule("projection_plan_is_a_leaf")
        .match("cqrs_ddd_queryable.plan")
        .should_not_import("cqrs_ddd_queryable.aliases*")
        .should_not_import("cqrs_ddd_queryable.projection*")
        .should_not_import("cqrs_ddd_queryable.ast*")
        .check("cqrs_ddd_queryable")
    )
