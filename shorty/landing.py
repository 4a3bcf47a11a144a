"""Landing page served at ``/``: a single form posting to ``/api/shorten``."""

__all__ = ["LANDING_PAGE"]

LANDING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Shorty - URL Shortener</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
            background: linear-gradient(135deg, #10b981 0%, #059669 100%);
            min-height: 100vh;
            margin: 0;
            display: flex;
            justify-content: center;
            align-items: center;
        }
        .container {
            background: white;
            border-radius: 20px;
            box-shadow: 0 20px 60px rgba(0, 0, 0, 0.3);
            padding: 40px;
            max-width: 600px;
            width: 100%;
            box-sizing: border-box;
        }
        h1 { color: #10b981; text-align: center; }
        input, button {
            width: 100%;
            padding: 14px;
            margin-top: 10px;
            border-radius: 10px;
            font-size: 1em;
            box-sizing: border-box;
        }
        input { border: 2px solid #e0e0e0; }
        button { background: #10b981; color: white; border: none; cursor: pointer; }
        button:disabled { opacity: 0.6; cursor: not-allowed; }
        .hidden { display: none; }
        .error { color: #dc3545; margin-top: 15px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Shorty</h1>
        <form id="shortenForm">
            <input type="url" id="url" placeholder="https://example.com/very/long/url" required autocomplete="off">
            <button type="submit" id="submitBtn">Shorten URL</button>
        </form>
        <div class="hidden" id="result">
            <input type="text" id="shortUrl" readonly>
            <button id="copyBtn">Copy</button>
        </div>
        <div class="error hidden" id="error"></div>
    </div>
    <script>
        const form = document.getElementById('shortenForm');
        const submitBtn = document.getElementById('submitBtn');
        const result = document.getElementById('result');
        const shortUrl = document.getElementById('shortUrl');
        const errorDiv = document.getElementById('error');

        form.addEventListener('submit', async (e) => {
            e.preventDefault();
            result.classList.add('hidden');
            errorDiv.classList.add('hidden');
            submitBtn.disabled = true;
            try {
                const response = await fetch('/api/shorten', {
                    method: 'POST',
                    headers: {'Content-Type': 'application/json'},
                    body: JSON.stringify({url: document.getElementById('url').value.trim()}),
                });
                const data = await response.json();
                if (response.ok) {
                    shortUrl.value = data.short_url;
                    result.classList.remove('hidden');
                } else {
                    errorDiv.textContent = typeof data.detail === 'string' ? data.detail : 'Invalid URL';
                    errorDiv.classList.remove('hidden');
                }
            } catch (error) {
                errorDiv.textContent = 'Network error. Please try again.';
                errorDiv.classList.remove('hidden');
            } finally {
                submitBtn.disabled = false;
            }
        });

        document.getElementById('copyBtn').addEventListener('click', async () => {
            await navigator.clipboard.writeText(shortUrl.value);
        });
    </script>
</body>
</html>
"""
