"""Stylesheet and behavior script embedded in exported HTML documents.

The script only reads attributes already present in the markup
(``data-toggle``, ``aria-expanded``, ``data-scroll-to``) so an export works
with no server and no framework.
"""

EXPORT_STYLES = """
:root {
  --bg-primary: #ffffff;
  --bg-secondary: #f9fafb;
  --bg-tertiary: #f3f4f6;
  --text-primary: #111827;
  --text-secondary: #374151;
  --text-tertiary: #6b7280;
  --border-primary: #e5e7eb;
  --accent: #2563eb;
  --accent-soft: #dbeafe;
  --reasoning: #7e22ce;
  --reasoning-soft: #f3e8ff;
  --task: #0f766e;
  --task-soft: #ccfbf1;
  --skill: #b45309;
  --skill-soft: #fef3c7;
  --success: #16a34a;
  --error: #dc2626;
  --error-soft: #fef2f2;
  --highlight: #fefce8;
}

.dark {
  color-scheme: dark;
  --bg-primary: #1f2937;
  --bg-secondary: #111827;
  --bg-tertiary: #374151;
  --text-primary: #ffffff;
  --text-secondary: #e5e7eb;
  --text-tertiary: #9ca3af;
  --border-primary: #374151;
  --accent: #60a5fa;
  --accent-soft: #1e3a8a;
  --reasoning: #c084fc;
  --reasoning-soft: #3b0764;
  --task: #2dd4bf;
  --task-soft: #134e4a;
  --skill: #fbbf24;
  --skill-soft: #451a03;
  --error-soft: #450a0a;
  --highlight: #422006;
}

* { box-sizing: border-box; }

html, body {
  margin: 0;
  padding: 0;
  background: var(--bg-secondary);
  color: var(--text-primary);
  font-family: ui-sans-serif, system-ui, -apple-system, "Segoe UI", Roboto, sans-serif;
  font-size: 15px;
  line-height: 1.5;
}

button {
  font: inherit;
  color: inherit;
  background: none;
  border: none;
  cursor: pointer;
  text-align: left;
}

pre {
  margin: 0;
  white-space: pre-wrap;
  word-break: break-word;
  font-family: ui-monospace, SFMono-Regular, Menlo, Consolas, monospace;
  font-size: 0.8125rem;
}

.hidden { display: none !important; }

.layout { display: flex; flex-direction: column; min-height: 100vh; }

.header {
  position: sticky;
  top: 0;
  z-index: 20;
  background: var(--bg-primary);
  border-bottom: 1px solid var(--border-primary);
  padding: 0.75rem 1.25rem;
}

.header-content { display: flex; align-items: center; gap: 1rem; }
.header-title { margin: 0; font-size: 1.125rem; font-weight: 600; }
.header-subtitle { margin: 0; font-size: 0.8125rem; color: var(--text-tertiary); }
.header-badges { display: flex; flex-wrap: wrap; gap: 0.5rem; margin-left: auto; }

.badge {
  display: inline-flex;
  align-items: center;
  gap: 0.25rem;
  padding: 0.125rem 0.5rem;
  border-radius: 9999px;
  background: var(--bg-tertiary);
  font-size: 0.75rem;
  color: var(--text-secondary);
}

.badge-label { color: var(--text-tertiary); }

.theme-toggle { padding: 0.375rem; border-radius: 0.375rem; }
.theme-toggle:hover { background: var(--bg-tertiary); }
.mobile-sidebar-toggle { display: none; }

.main-container { display: flex; flex: 1; }
.content-area { flex: 1; min-width: 0; padding: 1.25rem; max-width: 60rem; margin: 0 auto; }

.message-group { margin-bottom: 1.5rem; border-radius: 0.5rem; transition: background 0.6s; }
.highlight-message { background: var(--highlight); }

.user-message {
  background: var(--accent-soft);
  border-radius: 0.5rem;
  padding: 0.75rem 1rem;
}

.user-header { display: flex; justify-content: space-between; font-size: 0.8125rem; color: var(--text-tertiary); }
.user-header-left { display: flex; align-items: center; gap: 0.375rem; }
.user-label { font-weight: 600; color: var(--accent); }
.user-content { white-space: pre-wrap; margin-top: 0.375rem; }
.no-content { font-style: italic; color: var(--text-tertiary); }

.assistant-response {
  margin-top: 0.5rem;
  background: var(--bg-primary);
  border: 1px solid var(--border-primary);
  border-radius: 0.5rem;
}

.assistant-header {
  display: flex;
  align-items: center;
  gap: 0.5rem;
  width: 100%;
  padding: 0.625rem 1rem;
}

.assistant-label { font-weight: 600; }
.assistant-summary, .assistant-stats { font-size: 0.8125rem; color: var(--text-tertiary); }
.assistant-stats { margin-left: auto; }
.assistant-content { padding: 0 1rem 1rem; border-top: 1px solid var(--border-primary); }

.step { padding-top: 0.75rem; }
.step-label { font-size: 0.75rem; text-transform: uppercase; letter-spacing: 0.05em; color: var(--text-tertiary); }

.assistant-chevron svg, .tool-chevron svg, .reasoning-chevron svg, .embedded-chevron svg { transition: transform 0.15s; }
.expanded svg { transform: rotate(90deg); }

.prose { white-space: pre-wrap; margin: 0.5rem 0; }

.reasoning-chip, .tool-chip {
  display: inline-flex;
  align-items: center;
  gap: 0.375rem;
  margin: 0.25rem 0;
  padding: 0.25rem 0.625rem;
  border-radius: 9999px;
  font-size: 0.8125rem;
  max-width: 100%;
}

.reasoning-chip { background: var(--reasoning-soft); color: var(--reasoning); }
.reasoning-preview { color: var(--text-tertiary); overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
.reasoning-content { margin: 0.25rem 0 0.5rem; padding: 0.75rem; border-left: 3px solid var(--reasoning); background: var(--bg-secondary); }

.tool-chip { background: var(--bg-tertiary); }
.tool-chip.tool-task { background: var(--task-soft); color: var(--task); }
.tool-chip.tool-skill { background: var(--skill-soft); color: var(--skill); }
.tool-name { font-weight: 600; }
.tool-title { color: var(--text-tertiary); overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
.tool-status-completed { color: var(--success); }
.tool-status-error { color: var(--error); }
.tool-status-pending { color: var(--text-tertiary); }

.tool-details {
  margin: 0.25rem 0 0.5rem;
  padding: 0.75rem;
  border: 1px solid var(--border-primary);
  border-radius: 0.375rem;
  background: var(--bg-secondary);
}

.tool-section + .tool-section { margin-top: 0.5rem; }
.tool-section-label { font-size: 0.75rem; font-weight: 600; color: var(--text-tertiary); }
.tool-section-content { max-height: 24rem; overflow: auto; padding: 0.5rem; background: var(--bg-primary); border-radius: 0.25rem; }
.tool-error .tool-section-content { background: var(--error-soft); color: var(--error); }
.tool-duration { display: flex; align-items: center; gap: 0.25rem; margin-top: 0.5rem; font-size: 0.75rem; color: var(--text-tertiary); }

.file-part, .subtask-part, .embedded-session {
  margin: 0.5rem 0;
  padding: 0.5rem 0.75rem;
  border: 1px dashed var(--border-primary);
  border-radius: 0.375rem;
  font-size: 0.8125rem;
}

.subtask-part { border-color: var(--task); }
.subtask-agent { font-weight: 600; color: var(--task); }
.subtask-prompt { margin-top: 0.375rem; color: var(--text-secondary); }
.embedded-header { display: flex; align-items: center; gap: 0.375rem; color: var(--text-tertiary); }

.sidebar {
  width: 18rem;
  flex-shrink: 0;
  position: sticky;
  top: 3.5rem;
  align-self: flex-start;
  max-height: calc(100vh - 3.5rem);
  overflow-y: auto;
  padding: 1.25rem 1rem;
  border-left: 1px solid var(--border-primary);
  background: var(--bg-primary);
}

.sidebar-title { margin: 0 0 0.5rem; font-size: 0.75rem; text-transform: uppercase; color: var(--text-tertiary); }
.sidebar-list { list-style: none; margin: 0; padding: 0; }
.sidebar-link { display: flex; gap: 0.375rem; width: 100%; padding: 0.25rem 0.375rem; border-radius: 0.25rem; font-size: 0.8125rem; }
.sidebar-link:hover, .sidebar-link.active { background: var(--bg-tertiary); }
.sidebar-number { color: var(--text-tertiary); }
.sidebar-text { overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }
.sidebar-overlay { display: none; }

::-webkit-scrollbar { width: 8px; height: 8px; }
::-webkit-scrollbar-thumb { background: var(--border-primary); border-radius: 4px; }

@media (max-width: 900px) {
  .mobile-sidebar-toggle { display: inline-flex; }
  .header-badges { display: none; }
  .sidebar {
    position: fixed;
    top: 0;
    right: 0;
    bottom: 0;
    max-height: none;
    z-index: 40;
    transform: translateX(100%);
    transition: transform 0.2s;
  }
  .sidebar.mobile-open { transform: translateX(0); }
  .sidebar-overlay.open { display: block; position: fixed; inset: 0; z-index: 30; background: rgba(0, 0, 0, 0.4); }
}
""".strip()


EXPORT_SCRIPT = """
(function () {
  'use strict';

  var THEME_KEY = 'theme';
  var sidebarOpen = false;

  function storedTheme() {
    try {
      return localStorage.getItem(THEME_KEY);
    } catch (e) {
      return null;
    }
  }

  function storeTheme(theme) {
    try {
      localStorage.setItem(THEME_KEY, theme);
    } catch (e) {
      /* storage unavailable for file:// pages in some browsers */
    }
  }

  function syncThemeIcon() {
    var dark = document.documentElement.classList.contains('dark');
    var sun = document.querySelector('.theme-toggle .sun-icon');
    var moon = document.querySelector('.theme-toggle .moon-icon');
    if (sun && moon) {
      sun.style.display = dark ? 'inline-flex' : 'none';
      moon.style.display = dark ? 'none' : 'inline-flex';
    }
  }

  function applyTheme(theme) {
    document.documentElement.classList.toggle('dark', theme === 'dark');
    syncThemeIcon();
  }

  window.toggleTheme = function () {
    var next = document.documentElement.classList.contains('dark') ? 'light' : 'dark';
    applyTheme(next);
    storeTheme(next);
  };

  function onToggle(event) {
    var button = event.target.closest('[data-toggle]');
    if (!button) return;
    var target = document.getElementById(button.getAttribute('data-toggle'));
    if (!target) return;

    var expanded = button.getAttribute('aria-expanded') !== 'true';
    button.setAttribute('aria-expanded', expanded ? 'true' : 'false');
    target.classList.toggle('hidden', !expanded);

    var chevron = button.querySelector('.assistant-chevron, .tool-chevron, .reasoning-chevron, .embedded-chevron');
    if (chevron) chevron.classList.toggle('expanded', expanded);

    var preview = button.querySelector('.reasoning-preview');
    if (preview) preview.classList.toggle('hidden', expanded);
  }

  function onScrollLink(event) {
    var link = event.target.closest('[data-scroll-to]');
    if (!link) return;
    event.preventDefault();

    var target = document.getElementById(link.getAttribute('data-scroll-to'));
    if (!target) return;

    target.scrollIntoView({ behavior: 'smooth', block: 'start' });
    setTimeout(function () {
      target.classList.add('highlight-message');
      setTimeout(function () {
        target.classList.remove('highlight-message');
      }, 2000);
    }, 300);

    document.querySelectorAll('[data-scroll-to]').forEach(function (other) {
      other.classList.remove('active');
    });
    link.classList.add('active');
    closeSidebar();
  }

  function openSidebar() {
    var sidebar = document.querySelector('.sidebar');
    var overlay = document.querySelector('.sidebar-overlay');
    if (sidebar) sidebar.classList.add('mobile-open');
    if (overlay) overlay.classList.add('open');
    sidebarOpen = true;
  }

  function closeSidebar() {
    var sidebar = document.querySelector('.sidebar');
    var overlay = document.querySelector('.sidebar-overlay');
    if (sidebar) sidebar.classList.remove('mobile-open');
    if (overlay) overlay.classList.remove('open');
    sidebarOpen = false;
  }

  window.toggleMobileSidebar = function () {
    if (sidebarOpen) {
      closeSidebar();
    } else {
      openSidebar();
    }
  };

  function init() {
    var theme = storedTheme();
    if (theme) {
      applyTheme(theme);
    } else {
      syncThemeIcon();
    }

    document.addEventListener('click', onToggle);
    document.addEventListener('click', onScrollLink);

    var overlay = document.querySelector('.sidebar-overlay');
    if (overlay) overlay.addEventListener('click', closeSidebar);
    document.addEventListener('keydown', function (event) {
      if (event.key === 'Escape' && sidebarOpen) closeSidebar();
    });
  }

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', init);
  } else {
    init();
  }
})();
""".strip()
