"""Hello World -- the simplest possible tessera usage.

Run:
    python app.py
"""

from tessera import Environment

env = Environment()
template = env.from_string(
    "Hello, {{ name | title }}!{% if items %} You have {{ items | length }} items.{% end %}"
)
output = template.render(name="world", items=["a", "b", "c"])


def main() -> None:
    print(output)


if __name__ == "__main__":
    main()
