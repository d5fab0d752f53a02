"""Plugin descriptor models.

The descriptor is the YAML document scaffolded plugins are generated from::

    from src.descriptor import load_descriptor

    yaml_data = load_descriptor("my-plugin.yaml")
    yaml_data.yaml.name        # parsed PluginDescriptor
    yaml_data.yaml_data        # raw document text
"""

from src.descriptor.models import (
    FlagDescriptor,
    ObjectDescriptor,
    PluginDescriptor,
    RuntimeDescriptor,
    TaskDescriptor,
    YamlData,
    descriptor_from_name,
    load_descriptor,
    parse_descriptor,
)

__all__ = [
    "FlagDescriptor",
    "ObjectDescriptor",
    "PluginDescriptor",
    "RuntimeDescriptor",
    "TaskDescriptor",
    "YamlData",
    "descriptor_from_name",
    "load_descriptor",
    "parse_descriptor",
]
