"""Pydantic models for ChEMBL API data."""

from pydantic import BaseModel, model_validator


class ChEMBLTarget(BaseModel):
    """A ChEMBL target matched from a gene symbol."""

    target_chembl_id: str
    name: str = ""
    target_type: str = ""
    organism: str = ""


class Mechanism(BaseModel):
    """Mechanism of action linking a molecule to a ChEMBL target."""

    molecule_chembl_id: str
    mechanism_of_action: str = ""
    action_type: str = ""


class Molecule(BaseModel):
    """Data returned by the ChEMBL molecule endpoint for a single compound."""

    molecule_chembl_id: str = ""
    pref_name: str = ""
    molecule_type: str = ""
    max_phase: float | None = None
    withdrawn_flag: bool = False
    withdrawn_reason: str = ""

    @model_validator(mode="before")
    @classmethod
    def coerce_nones(cls, values: dict) -> dict:
        for field_name, field_info in cls.model_fields.items():
            if values.get(field_name) is None and field_info.default is not None:
                values[field_name] = field_info.default
        return values

    @property
    def display_name(self) -> str:
        return self.pref_name or self.molecule_chembl_id


class WithdrawnDrug(BaseModel):
    """A molecule acting on the target that has been withdrawn from market."""

    drug_name: str
    chembl_id: str
    withdrawn_reason: str = "Unknown reason"
    max_phase: float | None = None
