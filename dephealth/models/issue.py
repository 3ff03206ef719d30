from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, StrictBool, StrictStr


class IssueType(str, Enum):
    OUTDATED = "outdated"
    MISSING = "missing"
    BROKEN = "broken"
    PEER_CONFLICT = "peer_conflict"
    VERSION_MISMATCH = "version_mismatch"
    SECURITY = "security"


class IssueSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SecuritySeverity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class DependencyIssue(BaseModel):
    type: IssueType = Field(..., description="Kind of problem detected")
    package_name: StrictStr = Field(..., description="Affected package")
    current_version: Optional[StrictStr] = Field(None, description="Installed version")
    expected_version: Optional[StrictStr] = Field(
        None, description="Declared version or range"
    )
    latest_version: Optional[StrictStr] = Field(
        None, description="Latest published version"
    )
    severity: IssueSeverity = Field(..., description="Severity level")
    description: StrictStr = Field(..., description="Human readable description")
    fixable: StrictBool = Field(..., description="Whether an automatic fix exists")

    # Relationships reported by the scanner
    required_by: Optional[StrictStr] = Field(
        None, description="Package that declares the requirement"
    )
    conflicts_with: List[StrictStr] = Field(
        default_factory=list, description="Packages whose requirements clash"
    )
    transitive: StrictBool = Field(
        False, description="Requirement reached through another dependency"
    )

    class Config:
        use_enum_values = True
        frozen = True

    def identity_key(self) -> str:
        return (
            f"{self.type}:{self.package_name}:"
            f"{self.current_version or 'unknown'}:{self.expected_version or 'unknown'}"
        )


class VulnerabilityInfo(BaseModel):
    id: StrictStr = Field(..., description="Advisory identifier")
    title: StrictStr = Field(..., description="Advisory title")
    description: str = Field("", description="Advisory details")
    cvss: float = Field(0.0, ge=0.0, le=10.0, allow_inf_nan=False)
    cwe: List[str] = Field(default_factory=list, description="CWE identifiers")
    references: List[str] = Field(default_factory=list, description="Reference URLs")

    class Config:
        frozen = True


class SecurityIssue(BaseModel):
    package_name: StrictStr = Field(..., description="Affected package")
    version: StrictStr = Field(..., description="Installed version")
    vulnerability: VulnerabilityInfo
    severity: SecuritySeverity = Field(..., description="Advisory severity")
    fixed_in: Optional[StrictStr] = Field(None, description="First patched version")
    patch_available: StrictBool = Field(..., description="Whether a patch exists")

    class Config:
        use_enum_values = True
        frozen = True

    def identity_key(self) -> str:
        return f"{self.package_name}:{self.version}:{self.vulnerability.id}"
