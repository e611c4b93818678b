from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every wire schema.

    alias_generator: `document_id` travels as `documentId`.
    populate_by_name: services build models with Python names.
    from_attributes: routes can validate ORM rows directly.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
