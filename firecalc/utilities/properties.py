"""Typed configuration properties.

Module activation, wind and spread options, output selections and the
display unit set are all held as named, typed properties. The defaults
live in `firecalc/data/properties.json`; a PropertyDict can be saved to
and loaded from JSON so a configuration travels with its inputs.

Classes:
    - PropertyType: Names of the supported property types.
    - Property: One named, typed value.
    - PropertyDict: Name to Property mapping with typed access.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from firecalc.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PropertyValue = Union[bool, int, float, str]


class PropertyType:
    # Property value types
    BOOLEAN, INTEGER, REAL, STRING = "boolean", "integer", "real", "string"


@dataclass
class Property:
    name: str
    type: str
    value: PropertyValue
    default: PropertyValue
    choices: Optional[List[str]] = None


def _check_value(prop: Property, value) -> PropertyValue:
    if prop.type == PropertyType.BOOLEAN:
        ok = isinstance(value, bool)
    elif prop.type == PropertyType.INTEGER:
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif prop.type == PropertyType.REAL:
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        value = float(value) if ok else value
    else:
        ok = isinstance(value, str) and (prop.choices is None or value in prop.choices)

    if not ok:
        raise ConfigurationError(f"Invalid {prop.type} value {value!r}", parameter=prop.name)
    return value


class PropertyDict:
    """Named, typed configuration properties.

    Reading or writing a name that was never added raises
    ConfigurationError, as does writing a value of the wrong type.

    Example:
        >>> props = PropertyDict.load_defaults()
        >>> props.set("spot_module_active", True)
        >>> props.boolean("spot_module_active")
        True
    """

    _defaults = None # class-level cache

    def __init__(self, properties: Optional[Dict[str, Property]] = None):
        self._properties: Dict[str, Property] = dict(properties or {})

    @classmethod
    def load_default_table(cls) -> dict:
        if cls._defaults is None:
            json_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "properties.json")
            with open(json_path, "r") as f:
                cls._defaults = json.load(f)
        return cls._defaults

    @classmethod
    def load_defaults(cls) -> "PropertyDict":
        """New PropertyDict holding every default property."""
        props = cls()
        for name, entry in cls.load_default_table().items():
            props.add(name, entry["type"], entry["value"], entry.get("choices"))
        return props

    def add(self, name: str, type: str, value: PropertyValue,
            choices: Optional[List[str]] = None) -> None:
        if type not in (PropertyType.BOOLEAN, PropertyType.INTEGER,
                        PropertyType.REAL, PropertyType.STRING):
            raise ConfigurationError(f"Unknown property type '{type}'", parameter=name)
        prop = Property(name, type, value, value, choices)
        prop.value = prop.default = _check_value(prop, value)
        self._properties[name] = prop

    def __contains__(self, name: str) -> bool:
        return name in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def names(self) -> List[str]:
        return sorted(self._properties)

    def _get(self, name: str) -> Property:
        try:
            return self._properties[name]
        except KeyError:
            raise ConfigurationError("Unknown property", parameter=name) from None

    def get(self, name: str) -> PropertyValue:
        return self._get(name).value

    def set(self, name: str, value: PropertyValue) -> None:
        prop = self._get(name)
        prop.value = _check_value(prop, value)
        logger.debug("property %s = %r", name, prop.value)

    def boolean(self, name: str) -> bool:
        prop = self._get(name)
        if prop.type != PropertyType.BOOLEAN:
            raise ConfigurationError(f"Property is {prop.type}, not boolean", parameter=name)
        return prop.value

    def string(self, name: str) -> str:
        prop = self._get(name)
        if prop.type != PropertyType.STRING:
            raise ConfigurationError(f"Property is {prop.type}, not string", parameter=name)
        return prop.value

    def integer(self, name: str) -> int:
        prop = self._get(name)
        if prop.type != PropertyType.INTEGER:
            raise ConfigurationError(f"Property is {prop.type}, not integer", parameter=name)
        return prop.value

    def real(self, name: str) -> float:
        prop = self._get(name)
        if prop.type != PropertyType.REAL:
            raise ConfigurationError(f"Property is {prop.type}, not real", parameter=name)
        return prop.value

    def reset(self) -> None:
        """Return every property to its default value."""
        for prop in self._properties.values():
            prop.value = prop.default

    def update(self, values: Dict[str, PropertyValue]) -> None:
        for name, value in values.items():
            self.set(name, value)

    def to_dict(self) -> Dict[str, PropertyValue]:
        return {name: self._properties[name].value for name in self.names()}

    def save_json(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def load_json(self, path: str) -> None:
        """Apply the values saved in a JSON file.

        Raises:
            ConfigurationError: If the file names an unknown property or
                holds a value of the wrong type.
        """
        with open(path, "r") as f:
            values = json.load(f)
        for name, value in values.items():
            if name not in self:
                raise ConfigurationError("Unknown property", config_path=path, parameter=name)
            self.set(name, value)
        logger.info("Loaded %d properties from %s", len(values), path)
