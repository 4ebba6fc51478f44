"""Generate an example .properties file to see what the format looks like."""

import sys
sys.path.insert(0, str(__import__("pathlib").Path(__file__).parent.parent))

import uuid
from dataclasses import dataclass, field

from dotprops import DotProperties, Endpoint


@dataclass
class Profile:
    name: str = ""
    age: int = 0
    update: bool = False
    time: float = 0.0
    aliases: list = field(default_factory=list)  # stored via the binary fallback


props = DotProperties("example.properties")

value = props.get_or_create("test.message.third", "3")
print(f"test.message.third = {value}")

props.append("test.object", Profile("test", 1, False, 12.12, ["tester"]))
props.append("test.uuid", uuid.uuid4())
props.append("test.address", Endpoint("localhost", 12312))

props.save_properties()
props.load_properties()

print(props.get("test.uuid", uuid.UUID))
print(props.get("test.address", Endpoint))
print(props.get("test.object", Profile))
print()
print(open("example.properties", encoding="utf-8").read())
