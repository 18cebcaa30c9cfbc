"""Data model shared by the dispatch core, the gateway and the report sinks."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Policy action that blocks an inventory update
REJECT_ACTION = "Reject"


@dataclass(frozen=True)
class Dependency:
    """
    One discovered artifact.

    Produced only by the scanner and never modified afterwards.

    Attributes:
        artifact_id: File name of the artifact
        sha1: SHA-1 of the full file content
        system_path: Absolute path the artifact was found at
        checksums: Additional hashes keyed by type (partial sha1 matching)
        copyrights: Copyright lines found in the file
    """

    artifact_id: str
    sha1: str
    system_path: str
    checksums: Tuple[Tuple[str, str], ...] = ()
    copyrights: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "artifactId": self.artifact_id,
            "sha1": self.sha1,
            "systemPath": self.system_path,
        }
        for key, value in self.checksums:
            data[key] = value
        if self.copyrights:
            data["copyrights"] = [{"copyright": line} for line in self.copyrights]
        return data


@dataclass
class Project:
    """
    A unit of software being reported.

    Identified either by an opaque ``token`` or by ``name`` and ``version``,
    never both.
    """

    token: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: List[Dependency] = field(default_factory=list)

    def __post_init__(self) -> None:
        if bool(self.token) == bool(self.name):
            raise ValueError("Project needs exactly one of token or name")

    @property
    def display_name(self) -> str:
        """Name used in log lines."""
        if self.name:
            return f"{self.name} {self.version}".strip() if self.version else self.name
        return f"token:{self.token}"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"dependencies": [dep.to_dict() for dep in self.dependencies]}
        if self.token:
            data["projectToken"] = self.token
        else:
            data["coordinates"] = {"artifactId": self.name, "version": self.version or ""}
        return data


@dataclass(frozen=True)
class RequestIdentity:
    """Organization and product a request is made on behalf of."""

    org_token: str
    product: Optional[str] = None
    product_version: Optional[str] = None


@dataclass
class PolicyCheckNode:
    """
    A resource in a policy-check tree and the policy it matched, if any.

    Attributes:
        resource: Resource description (displayName, sha1, link, ...)
        policy: Matched policy (displayName, actionType, ...) or None
        children: Transitive resources below this one
    """

    resource: Dict[str, Any] = field(default_factory=dict)
    policy: Optional[Dict[str, Any]] = None
    children: List["PolicyCheckNode"] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return str(self.resource.get("displayName") or self.resource.get("artifactId") or "unknown")

    @property
    def is_rejected(self) -> bool:
        return bool(self.policy) and self.policy.get("actionType") == REJECT_ACTION

    def walk(self) -> Iterator["PolicyCheckNode"]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PolicyCheckNode":
        """
        Build a node tree from its JSON form.

        Raises:
            TypeError: If a node, resource, policy or children list has the wrong type
        """
        if not isinstance(data, dict):
            raise TypeError(f"Policy check node must be an object, got {type(data).__name__}")
        resource = data.get("resource") or {}
        policy = data.get("policy")
        children = data.get("children") or []
        if not isinstance(resource, dict) or not (policy is None or isinstance(policy, dict)):
            raise TypeError("Policy check node resource and policy must be objects")
        if not isinstance(children, list):
            raise TypeError("Policy check node children must be a list")
        return cls(resource=resource, policy=policy, children=[cls.from_dict(child) for child in children])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "policy": self.policy,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class ComplianceResult:
    """Outcome of a policy compliance check."""

    organization: str = ""
    new_projects: Dict[str, List[PolicyCheckNode]] = field(default_factory=dict)
    existing_projects: Dict[str, List[PolicyCheckNode]] = field(default_factory=dict)

    def has_rejections(self) -> bool:
        return any(True for _ in self.rejections())

    def rejections(self) -> Iterator[Tuple[str, PolicyCheckNode]]:
        """Yield (project name, node) for every rejected resource."""
        for projects in (self.new_projects, self.existing_projects):
            for project_name, roots in projects.items():
                for root in roots:
                    for node in root.walk():
                        if node.is_rejected:
                            yield project_name, node

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplianceResult":
        def _trees(raw: Optional[Dict[str, Any]]) -> Dict[str, List[PolicyCheckNode]]:
            trees: Dict[str, List[PolicyCheckNode]] = {}
            for name, nodes in (raw or {}).items():
                if isinstance(nodes, dict):
                    nodes = nodes.get("children") or [nodes]
                if not isinstance(nodes, list):
                    raise TypeError(f"Policy check tree for {name} must be a list")
                trees[name] = [PolicyCheckNode.from_dict(node) for node in nodes]
            return trees

        return cls(
            organization=data.get("organization", ""),
            new_projects=_trees(data.get("newProjects")),
            existing_projects=_trees(data.get("existingProjects")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization": self.organization,
            "hasRejections": self.has_rejections(),
            "newProjects": {name: [n.to_dict() for n in nodes] for name, nodes in self.new_projects.items()},
            "existingProjects": {
                name: [n.to_dict() for n in nodes] for name, nodes in self.existing_projects.items()
            },
        }


@dataclass
class UpdateResult:
    """Outcome of a successful inventory update."""

    organization: str = ""
    created_projects: List[str] = field(default_factory=list)
    updated_projects: List[str] = field(default_factory=list)
    request_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpdateResult":
        created = data.get("createdProjects") or []
        updated = data.get("updatedProjects") or []
        if not isinstance(created, list) or not isinstance(updated, list):
            raise TypeError("createdProjects and updatedProjects must be lists")
        return cls(
            organization=data.get("organization", ""),
            created_projects=[str(name) for name in created],
            updated_projects=[str(name) for name in updated],
            request_token=data.get("requestToken"),
        )


@dataclass
class OfflinePayload:
    """The update request that would have been sent, kept for a file instead."""

    agent: str
    agent_version: str
    org_token: str
    product: Optional[str]
    product_version: Optional[str]
    time_stamp: int
    projects: List[Project] = field(default_factory=list)
    request_type: str = "UPDATE"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.request_type,
            "agent": self.agent,
            "agentVersion": self.agent_version,
            "orgToken": self.org_token,
            "product": self.product or "",
            "productVersion": self.product_version or "",
            "timeStamp": self.time_stamp,
            "projects": [project.to_dict() for project in self.projects],
        }

    def to_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=4)
        return json.dumps(self.to_dict(), separators=(",", ":"))
