"""Storage facade: one storage service bound to one variant engine."""
from variantstore.services.storage.base import StorageService
from variantstore.services.variants.options import VariantOptions
from variantstore.services.variants.variant import Variant, VariantEngine


class Storage:
    def __init__(self, service: StorageService, engine: VariantEngine | None = None) -> None:
        self._service = service
        self._engine = engine or VariantEngine()

    @property
    def service(self) -> StorageService:
        return self._service

    @property
    def engine(self) -> VariantEngine:
        return self._engine

    def variant(self, key: str, options: VariantOptions) -> Variant:
        return self._engine.variant(self._service, key, options)

    def materialize(self, key: str, options: VariantOptions) -> str:
        """Generate the variant if missing and return its key."""
        return self._engine.materialize(self._service, key, options)
