"""
Module ORM Registry (``freight_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily by
``freight_kernel.db.engine.create_tables()``; nothing in the kernel
imports it at module load.
"""


def import_all_orm_models() -> None:
    """Import every ``freight_modules.*.orm`` module to register ORM models.

    This function is idempotent -- repeated calls are harmless.
    """
    # fmt: off
    import freight_modules.access.orm  # noqa: F401
    import freight_modules.activity.orm  # noqa: F401
    import freight_modules.invoicing.orm  # noqa: F401
    import freight_modules.pjo.orm  # noqa: F401
    # fmt: on
