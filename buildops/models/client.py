"""Client domain model (project owners / customers of the firm)."""

from datetime import datetime, timezone

from buildops.models import db


class Client(db.Model):
    """A customer the firm designs or builds for."""

    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    company_name = db.Column(db.String(200), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    join_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    projects = db.relationship("Project", backref="client", lazy="dynamic",
                               foreign_keys="Project.client_id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "company_name": self.company_name,
            "phone": self.phone,
            "email": self.email,
            "join_date": self.join_date.isoformat() if self.join_date else None,
        }

    def __repr__(self) -> str:
        return f"<Client {self.id}: {self.name}>"
