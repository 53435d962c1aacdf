"""Domain models (Pydantic v2).

These describe what the server reports (capability trees, MIME registry)
and the lifecycle of a managed server. They know nothing about HTTP or
processes.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

XTIKA_CONTENT = "X-TIKA:content"
"""Metadata field holding the extracted text of each document in a
recursive parse."""

RecursiveMetadata = list[dict[str, list[str]]]


class Translator(str, Enum):
    """Translators bundled with Tika Server.

    Credentials (API keys etc.) must be configured on the server side.
    """

    LINGO24 = "org.apache.tika.language.translate.Lingo24Translator"
    GOOGLE = "org.apache.tika.language.translate.GoogleTranslator"
    MOSES = "org.apache.tika.language.translate.MosesTranslator"
    JOSHUA = "org.apache.tika.language.translate.JoshuaTranslator"
    MICROSOFT = "org.apache.tika.language.translate.MicrosoftTranslator"
    YANDEX = "org.apache.tika.language.translate.YandexTranslator"


class ServerState(str, Enum):
    CREATED = "created"
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    STOPPED = "stopped"


class ParserNode(BaseModel):
    """A Tika parser. Composite parsers list their delegates in `children`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(
        default="",
        description="Fully qualified Java class name of the parser.",
    )
    decorated: bool = Field(default=False)
    composite: bool = Field(default=False)
    children: list[ParserNode] = Field(default_factory=list)
    supported_types: list[str] = Field(
        default_factory=list,
        alias="supportedTypes",
        description="MIME types handled directly by this parser.",
    )

    def walk(self) -> Iterator[ParserNode]:
        """Yield this node and every descendant, depth first."""

        yield self
        for child in self.children:
            yield from child.walk()


class DetectorNode(BaseModel):
    """A Tika detector. Composite detectors list their delegates in `children`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(default="")
    composite: bool = Field(default=False)
    children: list[DetectorNode] = Field(default_factory=list)

    def walk(self) -> Iterator[DetectorNode]:
        yield self
        for child in self.children:
            yield from child.walk()


class MimeTypeInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    alias: list[str] = Field(
        default_factory=list,
        description="Alternative names of the MIME type.",
    )
    supertype: str = Field(
        default="",
        description="Parent MIME type, empty when the type is a root.",
    )
