"""
Page-side functions evaluated by the Playwright adapters.

Each constant is a JavaScript function expression passed to
``Frame.evaluate``. They only read the document, except the scroll helper.
"""

SNAPSHOT_SCRIPT = """() => {
    const doc = document;
    const readRules = (sheet) => {
        if (!sheet) return null;
        try {
            return Array.from(sheet.cssRules || []).map(rule => rule.cssText);
        } catch (_) {
            return null;
        }
    };
    const stylesheets = Array.from(doc.querySelectorAll('style, link[rel="stylesheet"]')).map(el => {
        const isLink = el.tagName.toLowerCase() === 'link';
        return {
            node: isLink ? 'link' : 'style',
            media: el.getAttribute('media') || '',
            text: isLink ? '' : (el.textContent || ''),
            href: isLink ? (el.href || null) : null,
            rules: readRules(el.sheet),
            sheetMedia: el.sheet && el.sheet.media ? (el.sheet.media.mediaText || '') : '',
        };
    });
    return {
        bodyHTML: doc.body ? doc.body.innerHTML : '',
        title: doc.title || '',
        baseURI: doc.baseURI || '',
        url: doc.location ? doc.location.href : '',
        stylesheets,
    };
}"""

BODY_LENGTH_SCRIPT = """() => document.body ? document.body.innerHTML.trim().length : 0"""

HAS_SELECTOR_SCRIPT = """(selector) => document.querySelector(selector) !== null"""

HOST_FRAME_SCRIPT = """([hostSelector, frameSelectors]) => {
    const host = document.querySelector(hostSelector);
    if (!host || !host.shadowRoot) return null;
    for (const selector of frameSelectors) {
        const frame = host.shadowRoot.querySelector(selector);
        if (frame) return frame;
    }
    return null;
}"""

EMBEDDED_FRAMES_SCRIPT = """() => Array.from(document.querySelectorAll('iframe'))"""

SCROLL_HEIGHT_SCRIPT = """() => {
    const doc = document;
    const scrollable = doc.scrollingElement || doc.documentElement || doc.body;
    return Math.max(
        scrollable ? scrollable.scrollHeight : 0,
        doc.body ? doc.body.scrollHeight : 0,
        doc.documentElement ? doc.documentElement.scrollHeight : 0
    );
}"""

SCROLL_TO_SCRIPT = """(top) => {
    const doc = document;
    const scrollable = doc.scrollingElement || doc.documentElement || doc.body;
    if (scrollable) scrollable.scrollTop = top;
}"""

COUNT_SCRIPT = """(selector) => document.querySelectorAll(selector).length"""

NUDGE_TYPESETTER_SCRIPT = """async () => {
    if (window.MathJax && typeof window.MathJax.typesetPromise === 'function') {
        try { await window.MathJax.typesetPromise(); } catch (_) {}
        return true;
    }
    return false;
}"""

TYPESETTER_SETTLED_SCRIPT = """async () => {
    const mj = window.MathJax;
    if (!mj) return;
    try {
        if (typeof mj.typesetPromise === 'function') {
            await mj.typesetPromise();
        } else if (mj.Hub && typeof mj.Hub.Queue === 'function') {
            await new Promise(resolve => mj.Hub.Queue(() => resolve()));
        }
    } catch (_) {}
}"""

PENDING_IMAGES_SCRIPT = """() => Array.from(document.querySelectorAll('img'))
    .map((img, index) => img.complete ? -1 : index)
    .filter(index => index >= 0)"""

WAIT_FOR_IMAGE_SCRIPT = """(index) => new Promise(resolve => {
    const img = document.querySelectorAll('img')[index];
    if (!img || img.complete) return resolve();
    img.addEventListener('load', () => resolve(), { once: true });
    img.addEventListener('error', () => resolve(), { once: true });
})"""
