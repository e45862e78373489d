"""Update check configuration model."""

from pydantic import BaseModel, Field


class UpdateConfig(BaseModel):
    """Configuration for the release update check.
    
    Attributes:
        enabled: Whether `version` queries the package index
        package_name: Distribution name on the index
        index_url: Base URL of the JSON API
        timeout: Request timeout in seconds
    """

    enabled: bool = True
    package_name: str = Field("bundlectl", min_length=1)
    index_url: str = "https://pypi.org/pypi"
    timeout: float = Field(5.0, gt=0.0, le=60.0)
