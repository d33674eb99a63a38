"""Base Pydantic models for flexconf.

All option models (source options, the sources config file) inherit from
``ConfigBaseModel`` so they share one validation policy:

- Strict field validation (no extra fields allowed)
- Immutable instances, safe to share between a source and its reload thread

Example:
    >>> from flexconf.models import ConfigBaseModel
    >>> from pydantic import Field
    >>>
    >>> class MyOptions(ConfigBaseModel):
    ...     name: str
    ...     retries: int = Field(default=0, ge=0)
    >>>
    >>> MyOptions(name="db").model_dump()
    {'name': 'db', 'retries': 0}
"""

from pydantic import BaseModel, ConfigDict


class ConfigBaseModel(BaseModel):
    """Base model for all flexconf Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable for thread safety
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
