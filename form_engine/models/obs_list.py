"""Repeatable wrapper around observations sharing one control."""

from __future__ import annotations

from typing import Optional, Tuple

from form_engine.models.base import FrozenModel
from form_engine.models.obs import Obs


class ObsList(FrozenModel):
    form_field_path: Optional[str] = None
    form_namespace: Optional[str] = None
    obs: Optional[Obs] = None
    obs_list: Tuple[Obs, ...] = ()

    @property
    def concept(self):
        return self.obs.concept if self.obs is not None else None

    def set_obs_list(self, obs_list) -> "ObsList":
        return self.evolve(obs_list=tuple(obs_list))

    def add_obs(self, obs: Obs) -> "ObsList":
        return self.evolve(obs_list=self.obs_list + (obs,))

    def void(self) -> "ObsList":
        voided = tuple(o.void() for o in self.obs_list)
        if all(a is b for a, b in zip(voided, self.obs_list)):
            return self
        return self.evolve(obs_list=voided)

    def is_voided(self) -> bool:
        return all(o.voided for o in self.obs_list)

    @property
    def voided(self) -> bool:
        return self.is_voided()

    def clone_for_add_more(self, form_field_path: str) -> "ObsList":
        template = self.obs.clone_for_add_more(form_field_path) if self.obs is not None else None
        return ObsList(
            form_field_path=form_field_path,
            form_namespace=self.form_namespace,
            obs=template,
        )

    def remove_uuids(self) -> "ObsList":
        return self.evolve(
            obs=self.obs.remove_uuids() if self.obs is not None else None,
            obs_list=tuple(o.remove_uuids() for o in self.obs_list),
        )

    def get_object(self) -> list:
        return [o.get_object() for o in self.obs_list]


__all__ = ["ObsList"]
