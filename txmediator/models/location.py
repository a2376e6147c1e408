"""Location of a mediator inside the deployed configuration."""

from dataclasses import dataclass

from lxml import etree

from txmediator.constants import SYNAPSE_NAMESPACE
from txmediator.models.enums import ArtifactType

ANCESTOR_TAGS = {f"{{{SYNAPSE_NAMESPACE}}}{name}": name for name in ("api", "proxy", "sequence")}


@dataclass(frozen=True)
class MediatorLocation:
    """Artifact that encloses a mediator and the line it was declared on.

    Only used as transaction metadata, so a mediator declared outside any
    named artifact simply has no artifact type or name.
    """

    artifact_type: ArtifactType | None = None
    artifact_name: str | None = None
    line_number: int | None = None

    @classmethod
    def from_element(cls, element: etree._Element) -> "MediatorLocation":
        """Locate ``element`` by its nearest named api/proxy/sequence ancestor."""
        for ancestor in element.iterancestors():
            tag_name = ANCESTOR_TAGS.get(ancestor.tag)
            name = ancestor.get("name")
            if tag_name is not None and name is not None:
                return cls(ArtifactType.from_tag(tag_name), name, element.sourceline)
        return cls(line_number=element.sourceline)

    def __str__(self) -> str:
        return f"{self.artifact_type}: {self.artifact_name}:{self.line_number}"
