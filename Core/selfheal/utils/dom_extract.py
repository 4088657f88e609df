from __future__ import annotations

from typing import Any

from selfheal.core.metadata import InventoryEntry

TEXT_LIMIT = 100

COLLECT_INVENTORY_SCRIPT = r"""
const textLimit = arguments[0];
const interactive = 'button, a, input, select, textarea, [role="button"], [role="link"], '
  + '[data-testid], [data-test], [data-qa], [data-cy]';
const testIdAttributes = ["data-testid", "data-test", "data-qa", "data-cy"];

const testIdOf = (node) => {
  for (const name of testIdAttributes) {
    const value = node.getAttribute(name);
    if (value) return { name, value };
  }
  return null;
};

const bestSelector = (node) => {
  const tag = node.tagName.toLowerCase();
  const testId = testIdOf(node);
  if (testId) return `[${testId.name}="${testId.value}"]`;
  if (node.id) return `#${CSS.escape(node.id)}`;
  if (node.getAttribute("name")) return `${tag}[name="${node.getAttribute("name")}"]`;
  if (node.getAttribute("aria-label")) return `${tag}[aria-label="${node.getAttribute("aria-label")}"]`;
  if (node.classList.length) return `${tag}.${Array.from(node.classList).slice(0, 3).map((name) => CSS.escape(name)).join(".")}`;
  return tag;
};

const roots = [document];
for (const host of document.querySelectorAll("*")) {
  if (host.shadowRoot) roots.push(host.shadowRoot);
}

const seen = new Set();
const items = [];
for (const root of roots) {
  for (const node of root.querySelectorAll(interactive)) {
    if (seen.has(node)) continue;
    seen.add(node);
    const testId = testIdOf(node);
    items.push({
      tag: node.tagName.toLowerCase(),
      id: node.id || "",
      test_id: testId ? testId.value : "",
      role: node.getAttribute("role") || "",
      text: (node.innerText || node.textContent || node.value || "").trim().replace(/\s+/g, " ").slice(0, textLimit),
      name: node.getAttribute("name") || "",
      aria_label: node.getAttribute("aria-label") || "",
      placeholder: node.getAttribute("placeholder") || "",
      type: node.getAttribute("type") || "",
      classes: Array.from(node.classList),
      selector_hint: bestSelector(node),
    });
  }
}
return items;
"""


def extract_inventory(driver, text_limit: int = TEXT_LIMIT) -> list[InventoryEntry]:
    raw_entries = driver.execute_script(COLLECT_INVENTORY_SCRIPT, text_limit) or []
    return [inventory_entry_from_dict(item, text_limit) for item in raw_entries]


def inventory_entry_from_dict(item: dict[str, Any], text_limit: int = TEXT_LIMIT) -> InventoryEntry:
    return InventoryEntry(
        tag=str(item.get("tag", "")),
        id=str(item.get("id") or ""),
        test_id=str(item.get("test_id") or ""),
        role=str(item.get("role") or ""),
        text=str(item.get("text") or "")[:text_limit],
        name=str(item.get("name") or ""),
        aria_label=str(item.get("aria_label") or ""),
        placeholder=str(item.get("placeholder") or ""),
        type=str(item.get("type") or ""),
        classes=[str(name) for name in item.get("classes") or []],
        selector_hint=str(item.get("selector_hint") or ""),
    )
