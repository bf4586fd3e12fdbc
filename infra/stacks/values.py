"""Values that only exist once CloudFormation has created a resource."""

from dataclasses import dataclass

from aws_cdk import Token


@dataclass(frozen=True)
class ResolvedAfterProvisioning:
    """A deferred attribute of a provisioned resource.

    Attributes:
        token: The CDK token standing in for the value at synth time.
        source: Human-readable origin, e.g. ``BookStackRds.Endpoint.Address``.
    """

    token: str
    source: str

    def __post_init__(self) -> None:
        if not Token.is_unresolved(self.token):
            raise TypeError(
                f"{self.source} is a literal; deferred values must be CDK tokens"
            )

    def __str__(self) -> str:
        return self.token
