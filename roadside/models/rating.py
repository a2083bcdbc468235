"""Rating model"""
from roadside import db
from .base import BaseModel


class Rating(BaseModel):
    """A customer's 1-5 star rating of the provider who served a request"""
    __tablename__ = 'ratings'
    __realtime__ = True

    service_request_id = db.Column(db.String(36),
                                   db.ForeignKey('service_requests.id', ondelete='CASCADE'),
                                   nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'),
                            nullable=False)
    provider_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'),
                            nullable=False, index=True)

    rating = db.Column(db.Integer, nullable=False)
    review = db.Column(db.Text)

    # Shown on the public landing page
    featured = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (
        db.UniqueConstraint('service_request_id', 'customer_id', name='uq_ratings_request_customer'),
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_ratings_range'),
    )

    service_request = db.relationship('ServiceRequest', back_populates='ratings')

    def __repr__(self):
        return f'<Rating {self.rating} for {self.service_request_id}>'
