from html import escape

_BASE_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; margin: 0; padding: 20px;
       background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); min-height: 100vh; }
.container { max-width: 600px; margin: 40px auto; background: white; padding: 40px;
             border-radius: 12px; box-shadow: 0 10px 30px rgba(0,0,0,0.2); }
.button { display: inline-block; background: linear-gradient(45deg, #667eea, #764ba2); color: white;
          text-decoration: none; padding: 12px 24px; border-radius: 6px; margin: 10px 10px 0 0; }
.success { color: #28a745; }
.error { color: #721c24; }
.user-id { background: #e9ecef; padding: 10px; border-radius: 4px; font-family: monospace;
           word-break: break-all; }
.form-group { margin: 16px 0; }
label { display: block; margin-bottom: 6px; font-weight: 600; color: #555; }
input { width: 100%; padding: 10px; border: 2px solid #e1e5e9; border-radius: 6px; box-sizing: border-box; }
button { background: linear-gradient(45deg, #667eea, #764ba2); color: white; padding: 14px; border: none;
         border-radius: 6px; width: 100%; font-size: 16px; cursor: pointer; }
.result { margin-top: 24px; padding: 16px; border-radius: 8px; background: #f8f9fa; }
"""

_BOOKING_SCRIPT = """
document.getElementById('bookingForm').addEventListener('submit', async (event) => {
  event.preventDefault();
  const value = (id) => document.getElementById(id).value.trim();
  const resultDiv = document.getElementById('result');
  resultDiv.textContent = 'Booking appointment, please wait...';
  try {
    const response = await fetch('/book-appointment', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({
        userId: value('userId'),
        subject: value('subject'),
        startTime: new Date(value('startTime')).toISOString(),
        endTime: new Date(value('endTime')).toISOString(),
        attendeeName: value('attendeeName'),
        attendeeEmail: value('attendeeEmail'),
      }),
    });
    const result = await response.json();
    if (result.success) {
      resultDiv.textContent = `${result.message} Event ID: ${result.eventId}`;
    } else if (result.alternatives) {
      const times = result.alternatives.map((slot) => slot.displayLabel).join('; ');
      resultDiv.textContent = `${result.message} Available alternatives: ${times || 'none'}`;
    } else {
      resultDiv.textContent = `Booking failed: ${result.error || response.statusText}`;
    }
  } catch (error) {
    resultDiv.textContent = `Booking failed: ${error.message}`;
  }
});
"""


def _render(title: str, body: str, script: str = "") -> str:
    script_tag = f"<script>{script}</script>" if script else ""
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{escape(title)}</title><style>{_BASE_STYLE}</style>"
        f'</head><body><div class="container">{body}</div>{script_tag}</body></html>'
    )


def render_home_page() -> str:
    return _render(
        "Outlook Calendar Integration",
        "<h1>Outlook Calendar Integration</h1>"
        "<p>Connect your Microsoft account to start booking appointments.</p>"
        '<a href="/auth" class="button">Authenticate with Microsoft</a>'
        '<a href="/calendar-form" class="button">Go to Booking Form</a>',
    )


def render_calendar_form() -> str:
    fields = (
        ("userId", "User ID (from authentication page)", "text"),
        ("subject", "Meeting Subject", "text"),
        ("startTime", "Start Date &amp; Time", "datetime-local"),
        ("endTime", "End Date &amp; Time", "datetime-local"),
        ("attendeeName", "Your Name", "text"),
        ("attendeeEmail", "Your Email", "email"),
    )
    inputs = "".join(
        f'<div class="form-group"><label for="{field_id}">{label}</label>'
        f'<input type="{input_type}" id="{field_id}" required></div>'
        for field_id, label, input_type in fields
    )
    return _render(
        "Calendar Booking System",
        "<h1>Book Your Appointment</h1>"
        '<p>You need to <a href="/auth">authenticate</a> first to get your User ID.</p>'
        f'<form id="bookingForm">{inputs}<button type="submit">Book Appointment</button></form>'
        '<div id="result" class="result"></div>',
        _BOOKING_SCRIPT,
    )


def render_auth_success(*, user_id: str, display_name: str, email: str) -> str:
    return _render(
        "Authentication Success",
        '<h2 class="success">Authentication Successful!</h2>'
        f"<p><strong>Welcome, {escape(display_name or email or 'there')}!</strong></p>"
        f"<p>Email: {escape(email)}</p>"
        "<p><strong>Your User ID (copy this):</strong></p>"
        f'<div class="user-id">{escape(user_id)}</div>'
        '<a href="/calendar-form" class="button">Go to Calendar Booking Form</a>',
    )


def render_auth_failure(message: str) -> str:
    return _render(
        "Authentication Failed",
        '<h2 class="error">Authentication Failed</h2>'
        f"<p>Error: {escape(message)}</p>"
        '<a href="/auth" class="button">Try Again</a>',
    )
