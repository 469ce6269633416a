from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class PartitionInfo(BaseModel):
    id: int = Field(..., ge=0)
    leader: int | None = None
    replicas: list[int] = Field(default_factory=list)
    isr: list[int] = Field(default_factory=list)


class TopicInfo(BaseModel):
    name: str
    numPartitions: int = 0
    replicationFactor: int = 0
    config: Optional[Dict[str, str]] = None
    partitions: List[PartitionInfo] = Field(default_factory=list)

    @property
    def partition_ids(self) -> list[int]:
        """Partition ids known for the topic, falling back to 0..numPartitions-1."""
        if self.partitions:
            return sorted(p.id for p in self.partitions)
        return list(range(self.numPartitions))


class TopicCreateRequest(BaseModel):
    name: str = Field(
        ...,
        pattern=r"^[\w\-.]+$",
        examples=["checkout-orders"],
        description="Kafka topic name",
    )
    numPartitions: int = Field(..., ge=1)
    replicationFactor: int = Field(..., ge=1)
    config: Dict[str, str] = Field(default_factory=dict)
