"""Kubeconfig document model.

Mirrors the conventional kubeconfig schema so the file stays readable by
kubectl, oc and other tooling. Fields this project does not use (certificate
data, exec plugins, extensions, preferences) are kept as extra fields and
written back unchanged.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__ = [
    "ClusterInfo",
    "Cluster",
    "UserInfo",
    "User",
    "ContextInfo",
    "Context",
    "KubeConfig",
]


class ClusterInfo(BaseModel):
    """Connection details of a cluster entry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    server: str
    insecure_skip_tls_verify: Optional[bool] = Field(default=None, alias="insecure-skip-tls-verify")


class Cluster(BaseModel):
    """Named cluster entry (``clusters[]``)."""

    model_config = ConfigDict(extra="allow")

    name: str
    cluster: ClusterInfo

    @property
    def server(self) -> str:
        return self.cluster.server

    @property
    def verify_tls(self) -> bool:
        return not self.cluster.insecure_skip_tls_verify


class UserInfo(BaseModel):
    """Credentials of a user entry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    token: Optional[str] = None


class User(BaseModel):
    """Named user entry (``users[]``)."""

    model_config = ConfigDict(extra="allow")

    name: str
    user: UserInfo = Field(default_factory=UserInfo)

    @property
    def token(self) -> Optional[str]:
        return self.user.token


class ContextInfo(BaseModel):
    """Cluster/user pairing of a context entry."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    cluster: str
    user: str
    namespace: Optional[str] = None


class Context(BaseModel):
    """Named context entry (``contexts[]``)."""

    model_config = ConfigDict(extra="allow")

    name: str
    context: ContextInfo


class KubeConfig(BaseModel):
    """A whole kubeconfig document.

    Invariants checked on construction:
    - context names are unique
    - every context references an existing cluster and user
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: str = "Config"
    clusters: list[Cluster] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
    contexts: list[Context] = Field(default_factory=list)
    current_context: str = Field(default="", alias="current-context")
    preferences: dict[str, Any] = Field(default_factory=dict)

    @field_validator("clusters", "users", "contexts", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # kubectl writes "clusters: null" for an empty config
        if value is None:
            return []
        return value

    @field_validator("preferences", mode="before")
    @classmethod
    def _preferences_mapping(cls, value: Any) -> Any:
        return value or {}

    @field_validator("current_context", mode="before")
    @classmethod
    def _null_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _check_references(self) -> "KubeConfig":
        problems = self.find_problems()
        if problems:
            raise ValueError("; ".join(problems))
        return self

    def find_problems(self) -> list[str]:
        """Describe every broken invariant of the document (empty when valid)."""
        problems = []
        seen: set[str] = set()
        cluster_names = {cluster.name for cluster in self.clusters}
        user_names = {user.name for user in self.users}
        for context in self.contexts:
            if context.name in seen:
                problems.append(f"duplicate context '{context.name}'")
            seen.add(context.name)
            if context.context.cluster not in cluster_names:
                problems.append(
                    f"context '{context.name}' references unknown cluster '{context.context.cluster}'"
                )
            if context.context.user not in user_names:
                problems.append(
                    f"context '{context.name}' references unknown user '{context.context.user}'"
                )
        return problems

    # Lookup

    def get_cluster(self, name: str) -> Optional[Cluster]:
        return next((cluster for cluster in self.clusters if cluster.name == name), None)

    def get_user(self, name: str) -> Optional[User]:
        return next((user for user in self.users if user.name == name), None)

    def get_context(self, name: str) -> Optional[Context]:
        return next((context for context in self.contexts if context.name == name), None)

    def context_names(self) -> list[str]:
        return [context.name for context in self.contexts]

    def is_cluster_referenced(self, cluster_name: str) -> bool:
        return any(context.context.cluster == cluster_name for context in self.contexts)

    def is_user_referenced(self, user_name: str) -> bool:
        return any(context.context.user == user_name for context in self.contexts)

    # Mutation

    def add_cluster(self, name: str, server: str, skip_tls_verify: bool = False) -> Cluster:
        cluster = Cluster(
            name=name,
            cluster=ClusterInfo(server=server, insecure_skip_tls_verify=skip_tls_verify or None),
        )
        self.clusters.append(cluster)
        return cluster

    def add_user(self, name: str, token: str) -> User:
        user = User(name=name, user=UserInfo(token=token))
        self.users.append(user)
        return user

    def add_context(
        self, name: str, cluster: str, user: str, namespace: Optional[str] = None
    ) -> Context:
        context = Context(
            name=name,
            context=ContextInfo(cluster=cluster, user=user, namespace=namespace),
        )
        self.contexts.append(context)
        return context

    def remove_context(self, name: str) -> Optional[Context]:
        context = self.get_context(name)
        if context is not None:
            self.contexts.remove(context)
            if self.current_context == name:
                self.current_context = ""
        return context

    def remove_cluster(self, name: str) -> None:
        self.clusters = [cluster for cluster in self.clusters if cluster.name != name]

    def remove_user(self, name: str) -> None:
        self.users = [user for user in self.users if user.name != name]

    def to_dict(self) -> dict[str, Any]:
        """Serialise using kubeconfig field names."""
        return self.model_dump(by_alias=True, exclude_none=True)
