"""
Page-side JavaScript used by the engine.

Every snippet is a module constant so the host code references them by
name; only the rule invocation wrapper is built per call.
"""

from __future__ import annotations

PROTOCOL_ERROR_PREFIX = "viewlint protocol error:"

ROOT_MARKER_ATTR = "data-viewlint-root-id"
IGNORE_ATTR = "data-viewlint-ignore"
REPORT_BINDING = "__viewlint_report"
REF_KEY = "__viewlintRef"

# Selector-path generator. Prefers a unique id anchor, otherwise walks up
# with tag / nth-of-type steps until the path matches only the element.
FINDER_RUNTIME = """
(() => {
  if (typeof window.__viewlint_finder === "function") return;

  const esc = (value) =>
    window.CSS && typeof CSS.escape === "function"
      ? CSS.escape(value)
      : String(value).replace(/([^a-zA-Z0-9_-])/g, "\\\\$1");

  const matchesOnly = (selector, el) => {
    try {
      const found = document.querySelectorAll(selector);
      return found.length === 1 && found[0] === el;
    } catch {
      return false;
    }
  };

  const step = (el) => {
    const tag = el.tagName.toLowerCase();
    const parent = el.parentElement;
    if (!parent) return tag;
    const sameTag = Array.from(parent.children).filter((c) => c.tagName === el.tagName);
    if (sameTag.length === 1) return tag;
    return `${tag}:nth-of-type(${sameTag.indexOf(el) + 1})`;
  };

  window.__viewlint_finder = (el) => {
    if (!(el instanceof Element)) {
      throw new Error("viewlint finder expects an Element");
    }
    const parts = [];
    for (let current = el; current; current = current.parentElement) {
      const idSelector = current.id ? `#${esc(current.id)}` : null;
      const anchored = idSelector !== null && document.querySelectorAll(idSelector).length === 1;
      parts.unshift(anchored ? idSelector : step(current));
      const selector = parts.join(" > ");
      if (anchored || matchesOnly(selector, el)) return selector;
    }
    return parts.join(" > ");
  };
})()
"""

# Converts a raw in-page violation (elements) into a transport-safe payload
# (location descriptors) and forwards it through the exposed binding.
REPORT_ADAPTER = (
    """
(() => {
  const w = window;
  const PROTOCOL = "%(prefix)s";

  const toLocation = (el) => {
    if (typeof w.__viewlint_finder !== "function") {
      throw new Error(`${PROTOCOL} selector finder runtime is missing from the page`);
    }
    if (!(el instanceof Element)) {
      throw new Error(`report() expects an Element, got ${Object.prototype.toString.call(el)}`);
    }
    return {
      element: {
        selector: w.__viewlint_finder(el),
        tagName: el.tagName.toLowerCase(),
        id: el.id || "",
        classes: Array.from(el.classList),
      },
    };
  };

  w.__viewlint_report_payload = (violation) => {
    const payload = {
      message: String(violation.message),
      location: toLocation(violation.element),
      relations: (violation.relations || []).map((r) => ({
        description: String(r.description),
        location: toLocation(r.element),
      })),
    };
    if (typeof w.%(binding)s !== "function") {
      throw new Error(`${PROTOCOL} report binding is missing from the page`);
    }
    return w.%(binding)s(payload);
  };
})()
"""
    % {"prefix": PROTOCOL_ERROR_PREFIX, "binding": REPORT_BINDING}
)

_INVOCATION_TEMPLATE = (
    """
async (wire) => {
  const PROTOCOL = "%(prefix)s";
  const forward = window.__viewlint_report_payload;
  if (typeof forward !== "function") {
    throw new Error(`${PROTOCOL} report adapter is missing from the page`);
  }

  const unbox = (value) => {
    if (Array.isArray(value)) return value.map(unbox);
    if (value !== null && typeof value === "object" && Object.getPrototypeOf(value) === Object.prototype) {
      const keys = Object.keys(value);
      if (keys.length === 1 && keys[0] === "%(ref)s") return wire.refs[value["%(ref)s"]];
      const out = {};
      for (const key of keys) out[key] = unbox(value[key]);
      return out;
    }
    return value;
  };

  const pending = [];
  const report = (violation) => {
    pending.push(forward(violation));
  };

  const fn = (__VIEWLINT_RULE_FN__);
  try {
    return await fn({ report, scope: wire.scope, args: unbox(wire.payload) });
  } finally {
    await Promise.all(pending);
  }
}
"""
    % {"prefix": PROTOCOL_ERROR_PREFIX, "ref": REF_KEY}
)


def build_invocation(source: str) -> str:
    """Wrap rule function source so it receives ``{report, scope, args}``."""
    return _INVOCATION_TEMPLATE.replace("__VIEWLINT_RULE_FN__", source.strip())


ENSURE_ROOT_MARKER = """
(node, { attribute, candidate }) => {
  if (!(node instanceof Element)) {
    throw new Error("Scope roots must be Elements");
  }
  const existing = node.getAttribute(attribute);
  if (existing) return existing;
  node.setAttribute(attribute, candidate);
  return candidate;
}
"""

CREATE_BROWSER_SCOPE = """
({ attribute, markers }) => {
  const byMarker = (marker) => document.querySelector(`[${attribute}="${CSS.escape(marker)}"]`);
  const roots = () => markers.map(byMarker).filter((el) => el !== null);

  const queryAll = (selector) => {
    const results = [];
    const seen = new Set();
    for (const root of roots()) {
      if (root.matches(selector) && !seen.has(root)) {
        seen.add(root);
        results.push(root);
      }
      for (const el of root.querySelectorAll(selector)) {
        if (seen.has(el)) continue;
        seen.add(el);
        results.push(el);
      }
    }
    return results;
  };

  const query = (selector) => {
    for (const root of roots()) {
      if (root.matches(selector)) return root;
      const match = root.querySelector(selector);
      if (match) return match;
    }
    return null;
  };

  return {
    get roots() {
      return roots();
    },
    markers: [...markers],
    queryAll,
    query,
  };
}
"""

DESCRIBE_ELEMENT = (
    """
(el) => {
  if (typeof window.__viewlint_finder !== "function") {
    throw new Error("%(prefix)s selector finder runtime is missing from the page");
  }
  return {
    element: {
      selector: window.__viewlint_finder(el),
      tagName: el.tagName.toLowerCase(),
      id: el.id || "",
      classes: Array.from(el.classList),
    },
  };
}
"""
    % {"prefix": PROTOCOL_ERROR_PREFIX}
)

SCROLL_POSITION = "() => ({ x: window.scrollX, y: window.scrollY })"

RESTORE_SCROLL = "(pos) => window.scrollTo(pos.x, pos.y)"

COLLECT_IGNORE_CHAINS = """
({ attribute, selectors }) =>
  selectors.map((selector) => {
    let el;
    try {
      el = document.querySelector(selector);
    } catch {
      return null;
    }
    if (!el) return null;
    const values = [];
    for (let current = el; current; current = current.parentElement) {
      if (current.hasAttribute(attribute)) values.push(current.getAttribute(attribute) || "");
    }
    return values;
  })
"""
