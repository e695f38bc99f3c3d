"""Vendor-side integration: the browser script that pushes a storefront's catalog to us."""

from __future__ import annotations

import json
import logging
from string import Template
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from syncworker.models import Vendor

logger = logging.getLogger(__name__)

SYNC_INTERVAL_MS = 3_600_000
PRODUCT_SELECTORS = ".product, [data-product-id], [data-product], .product-item"

SCRIPT_TEMPLATE = Template(
    """/* Vendor Catalog Sync client */
(function () {
  if (window.VENDOR_SYNC) {
    return;
  }

  window.VENDOR_SYNC = {
    config: $config,
    selectors: $selectors,
    _timer: null,
    _observer: null,
    _syncing: false,

    init: function (customConfig) {
      var overrides = customConfig || {};
      for (var key in overrides) {
        if (Object.prototype.hasOwnProperty.call(overrides, key)) {
          this.config[key] = overrides[key];
        }
      }
      this.log("initialised for vendor " + this.config.vendorId);
      if (this.config.autoSync) {
        this.setupAutoSync();
        this.observe();
        var self = this;
        setTimeout(function () { self.sync(); }, 5000);
      }
      return this;
    },

    log: function (message) {
      if (this.config.debug && window.console) {
        window.console.log("[vendor-sync] " + message);
      }
    },

    text: function (root, selector) {
      var node = root.querySelector(selector);
      return node && node.textContent ? node.textContent.trim() : "";
    },

    parsePrice: function (raw) {
      if (!raw) {
        return null;
      }
      var match = String(raw).replace(/\\s/g, "").match(/-?\\d+(?:[.,]\\d+)*/);
      if (!match) {
        return null;
      }
      var token = match[0];
      if (token.indexOf(",") > -1 && token.indexOf(".") > -1) {
        token = token.lastIndexOf(",") > token.lastIndexOf(".")
          ? token.replace(/\\./g, "").replace(",", ".")
          : token.replace(/,/g, "");
      } else if (token.indexOf(",") > -1) {
        token = /,\\d{1,2}$$/.test(token) ? token.replace(",", ".") : token.replace(/,/g, "");
      } else if (/^-?[1-9]\\d{0,2}(?:\\.\\d{3})+$$/.test(token)) {
        token = token.replace(/\\./g, "");
      }
      var value = parseFloat(token);
      return isNaN(value) ? null : value;
    },

    collectProducts: function () {
      var nodes = document.querySelectorAll(this.selectors);
      var products = [];
      var seen = {};
      for (var i = 0; i < nodes.length; i++) {
        var el = nodes[i];
        var link = el.querySelector("a[href]");
        var image = el.querySelector("img");
        var name = this.text(el, ".product-title, .product-name, .title, h2, h3");
        var price = this.parsePrice(el.getAttribute("data-price") || this.text(el, ".price, .product-price, [class*=price]"));
        var externalId = el.getAttribute("data-product-id") || el.getAttribute("data-id") || (link ? link.getAttribute("href") : "");
        if (!name || price === null || !externalId || seen[externalId]) {
          continue;
        }
        seen[externalId] = true;
        var stockText = this.text(el, ".product-stock, .stock, [data-product-stock]");
        var stockMatch = stockText.match(/\\d+/);
        products.push({
          externalId: externalId,
          name: name,
          price: price,
          description: this.text(el, ".product-description, .description"),
          stock: stockMatch ? parseInt(stockMatch[0], 10) : 0,
          imageUrl: image ? (image.getAttribute("data-src") || image.src || "") : ""
        });
      }
      return products;
    },

    sync: function () {
      if (this._syncing) {
        return Promise.resolve(null);
      }
      var products = this.collectProducts();
      if (!products.length) {
        this.log("no products found on this page");
        return Promise.resolve(null);
      }
      if (!this.config.apiKey) {
        this.notify("Catalog sync is not configured: missing API key", true);
        return Promise.resolve(null);
      }
      var self = this;
      var url = this.config.apiBaseUrl + "/v1/vendors/" + encodeURIComponent(this.config.vendorId) + "/sync";
      this._syncing = true;
      return fetch(url, {
        method: "POST",
        headers: {
          "Content-Type": "application/json",
          "Authorization": "Bearer " + this.config.apiKey
        },
        body: JSON.stringify({ products: products })
      })
        .then(function (response) {
          return response.json().then(function (body) {
            if (!response.ok) {
              throw new Error((body && body.message) || ("HTTP " + response.status));
            }
            return body;
          });
        })
        .then(function (body) {
          self.notify("Synced " + products.length + " products", false);
          return body;
        })
        .catch(function (error) {
          self.notify("Catalog sync failed: " + error.message, true);
          return null;
        })
        .then(function (result) {
          self._syncing = false;
          return result;
        });
    },

    notify: function (message, isError) {
      this.log(message);
      var toast = document.createElement("div");
      toast.textContent = message;
      toast.setAttribute("role", "status");
      toast.style.cssText = "position:fixed;bottom:20px;right:20px;z-index:2147483647;padding:10px 16px;" +
        "border-radius:4px;color:#fff;font:14px sans-serif;box-shadow:0 2px 8px rgba(0,0,0,.2);" +
        "background:" + (isError ? "#c62828" : "#2e7d32");
      document.body.appendChild(toast);
      setTimeout(function () {
        if (toast.parentNode) {
          toast.parentNode.removeChild(toast);
        }
      }, 3000);
    },

    setupAutoSync: function () {
      var self = this;
      if (this._timer) {
        clearInterval(this._timer);
      }
      this._timer = setInterval(function () { self.sync(); }, this.config.syncInterval);
    },

    observe: function () {
      if (!window.MutationObserver || this._observer) {
        return;
      }
      var self = this;
      var pending = null;
      this._observer = new MutationObserver(function () {
        if (pending) {
          clearTimeout(pending);
        }
        pending = setTimeout(function () { self.sync(); }, 2000);
      });
      this._observer.observe(document.body, { childList: true, subtree: true });
    }
  };
})();
"""
)

EMBED_TEMPLATE = Template(
    """<!-- Vendor Catalog Sync -->
<script>
(function () {
  var config = $config;
  var script = document.createElement("script");
  script.src = $script_url;
  script.async = true;
  script.onload = function () {
    if (window.VENDOR_SYNC) {
      window.VENDOR_SYNC.init(config);
    }
  };
  document.head.appendChild(script);
})();
</script>
<!-- End Vendor Catalog Sync -->
"""
)


def _js_literal(value: Any) -> str:
    # keep "</script>" inside a string from closing the host tag
    return json.dumps(value).replace("</", "<\\/")


def _config(vendor_id: str, api_base_url: str, api_key: str | None) -> dict[str, Any]:
    return {
        "apiBaseUrl": api_base_url.rstrip("/"),
        "vendorId": vendor_id,
        "apiKey": api_key,
        "autoSync": True,
        "syncInterval": SYNC_INTERVAL_MS,
        "debug": False,
    }


def generate_script(vendor_id: str, api_base_url: str, api_key: str | None) -> str:
    return SCRIPT_TEMPLATE.substitute(
        config=_js_literal(_config(vendor_id, api_base_url, api_key)),
        selectors=_js_literal(PRODUCT_SELECTORS),
    )


def generate_embed_snippet(vendor_id: str, api_base_url: str, api_key: str) -> str:
    base = api_base_url.rstrip("/")
    return EMBED_TEMPLATE.substitute(
        config=_js_literal(_config(vendor_id, base, api_key)),
        script_url=_js_literal(f"{base}/v1/vendors/{vendor_id}/sync-script.js"),
    )


def ensure_api_key(db: Session, vendor: Vendor) -> str:
    if vendor.api_key:
        return vendor.api_key
    vendor.api_key = uuid4().hex
    db.commit()
    logger.info("Generated API key for vendor %s", vendor.id)
    return vendor.api_key
