"""Context tags -- tags that read and write the render context.

Demonstrates:
- register_tag() for a plain tag that only sees its arguments
- @env.tag(takes_context=True) for tags that receive a ContextHandle
- A tag that keeps its handle (an audit log) without disturbing the render
- render_context() to see which reclamation path each handoff took

Run:
    python app.py
"""

from tessera import Context, ContextSlot, Environment, render_context

env = Environment()
audit: list = []


def badge(label: str, color: str = "grey") -> str:
    """Plain tag: output depends only on its arguments."""
    return f"[{color}:{label}]"


env.register_tag("badge", badge)


@env.tag(takes_context=True)
def stamp(ctx) -> str:
    """Record when the page was rendered, in the page's timezone."""
    ctx["rendered_at"] = f"12:00 {ctx['timezone']}"
    return ""


@env.tag(takes_context=True)
def greeting(ctx, salutation: str = "Hello") -> str:
    return f"{salutation}, {ctx['user']}"


@env.tag(takes_context=True)
def remember(ctx) -> None:
    """Keep the handle so it can be inspected after the render."""
    audit.append(ctx)


template = env.from_string(
    "{% stamp %}{% greeting salutation='Welcome' as hello %}"
    "{{ hello }}! {% badge 'beta' color='blue' %}\n"
    "{% for order in orders %}"
    "{{ loop.index }}. {{ order }}{% remember %}\n"
    "{% empty %}No orders.\n{% end %}"
    "Rendered at {{ rendered_at }}",
    name="dashboard.html",
)

slot = ContextSlot(Context({"user": "Ada", "timezone": "UTC", "orders": ["tea", "cake"]}))
with render_context() as rc:
    output = template.render_slot(slot)

stats = rc.handoff
final_context = slot.context


def main() -> None:
    print(output)
    print(f"handoffs={stats.handoffs} unique={stats.unique} deep_copy={stats.deep_copy}")
    for handle in audit:
        print(f"kept: order={handle['order']} refs={handle.refcount}")


if __name__ == "__main__":
    main()
