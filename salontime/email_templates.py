"""
HTML email templates for SalonTime notifications
Inline styles only, so templates render in every mail client
"""

from html import escape

THEME = {
    "primary": "#F97316",
    "text": "#1F2937",
    "text_muted": "#6B7280",
    "background": "#F9FAFB",
}


def get_base_template(title: str, content: str, cta_label: str = None, cta_url: str = None) -> str:
    cta = ""
    if cta_label and cta_url:
        cta = f"""
      <p style="text-align:center;margin:32px 0 8px 0;">
        <a href="{escape(cta_url, quote=True)}"
           style="background:{THEME['primary']};color:#ffffff;padding:12px 28px;border-radius:8px;text-decoration:none;font-weight:600;">
          {escape(cta_label)}
        </a>
      </p>"""

    return f"""<!DOCTYPE html>
<html>
  <body style="margin:0;padding:0;background:{THEME['background']};font-family:Helvetica,Arial,sans-serif;color:{THEME['text']};">
    <div style="max-width:560px;margin:0 auto;padding:32px 24px;background:#ffffff;">
      <h1 style="font-size:22px;color:{THEME['primary']};margin:0 0 24px 0;">{escape(title)}</h1>
      {content}
      {cta}
      <p style="font-size:12px;color:{THEME['text_muted']};margin-top:40px;">SalonTime</p>
    </div>
  </body>
</html>"""


def salon_owner_welcome_template(owner_name: str, business_name: str, dashboard_url: str) -> str:
    content = f"""
      <p>Hi {escape(owner_name)},</p>
      <p>Welcome to SalonTime! <strong>{escape(business_name)}</strong> has been created.</p>
      <p>To start accepting bookings:</p>
      <ul>
        <li>Finish your Stripe payout setup</li>
        <li>Add your services and business hours</li>
        <li>Upload photos of your salon</li>
      </ul>"""
    return get_base_template("Welcome to SalonTime", content, "Open dashboard", dashboard_url)


def new_review_template(business_name: str, client_name: str, rating: int, comment: str, reviews_url: str) -> str:
    stars = "★" * rating + "☆" * (5 - rating)
    comment_html = (
        f'<blockquote style="border-left:3px solid {THEME["primary"]};margin:16px 0;padding-left:12px;'
        f'color:{THEME["text_muted"]};">{escape(comment)}</blockquote>'
        if comment
        else ""
    )
    content = f"""
      <p><strong>{escape(client_name)}</strong> left a review for {escape(business_name)}.</p>
      <p style="font-size:20px;color:{THEME['primary']};">{stars}</p>
      {comment_html}"""
    return get_base_template("New review received", content, "View reviews", reviews_url)


def payment_link_template(business_name: str, service_name: str, amount: str, payment_url: str) -> str:
    content = f"""
      <p>{escape(business_name)} has requested payment for <strong>{escape(service_name)}</strong>.</p>
      <p>Amount due: <strong>{escape(amount)}</strong></p>"""
    return get_base_template("Complete your payment", content, "Pay now", payment_url)
