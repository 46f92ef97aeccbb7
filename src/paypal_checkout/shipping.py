"""Shipping option registry for a checkout session."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from paypal_checkout.errors import (
    ShippingOptionConflict,
    ShippingOptionNotFound,
    UnknownShippingOption,
)
from paypal_checkout.models import ShippingOption

logger = logging.getLogger(__name__)


class ShippingOptionRegistry:
    """
    Ordered shipping options offered during one session.

    The set of ids is fixed at registration. At most one option is selected
    at any time: the caller's pre-selection at first, then whatever the
    hosted flow reports the buyer chose.
    """

    def __init__(self, options: list[ShippingOption]):
        self._options = list(options)
        self._by_id = {option.id: option for option in self._options}
        self._selected_id: Optional[str] = next(
            (option.id for option in self._options if option.selected), None
        )

    @classmethod
    def register(cls, options: Optional[Iterable[ShippingOption]]) -> "ShippingOptionRegistry":
        """
        Build a registry from caller-supplied options.

        Raises:
            ShippingOptionConflict: On duplicate ids or more than one selection
        """
        options = list(options or [])

        seen: set[str] = set()
        duplicates: list[str] = []
        for option in options:
            if option.id in seen and option.id not in duplicates:
                duplicates.append(option.id)
            seen.add(option.id)
        if duplicates:
            raise ShippingOptionConflict(
                f"Shipping option ids must be unique, duplicated: {', '.join(duplicates)}",
                field="shippingOptions",
                details={"duplicate_ids": duplicates},
            )

        selected = [option.id for option in options if option.selected]
        if len(selected) > 1:
            raise ShippingOptionConflict(
                "Only one shipping option can be selected",
                field="shippingOptions",
                details={"selected_ids": selected},
            )

        return cls(options)

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, option_id: object) -> bool:
        return option_id in self._by_id

    @property
    def ids(self) -> list[str]:
        return [option.id for option in self._options]

    @property
    def options(self) -> list[ShippingOption]:
        """Options in registration order, reflecting the current selection."""
        return [
            option.model_copy(update={"selected": option.id == self._selected_id})
            for option in self._options
        ]

    def get(self, option_id: str) -> ShippingOption:
        try:
            option = self._by_id[option_id]
        except KeyError:
            raise ShippingOptionNotFound(option_id) from None
        return option.model_copy(update={"selected": option_id == self._selected_id})

    def select(self, option_id: str) -> None:
        """Record the option the hosted flow reported as chosen."""
        if option_id not in self._by_id:
            raise ShippingOptionNotFound(option_id)
        self._selected_id = option_id
        logger.debug("Shipping option %s selected", option_id)

    def selected(self) -> Optional[ShippingOption]:
        if self._selected_id is None:
            return None
        return self.get(self._selected_id)

    def ensure_known(self, option_id: Optional[str]) -> None:
        """
        Check an approval's shipping option id against the registry.

        Raises:
            UnknownShippingOption: If the id was never offered
        """
        if option_id is not None and option_id not in self._by_id:
            raise UnknownShippingOption(option_id, known_ids=self.ids)
