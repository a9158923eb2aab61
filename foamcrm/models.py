from datetime import datetime

from foamcrm import db

INSULATION_TYPES = ('closed_cell', 'open_cell', 'batt', 'blown_in', 'hybrid')
SURFACE_TYPES    = ('wall', 'ceiling')
FRAMING_SIZES    = ('2x4', '2x6', '2x8', '2x10', '2x12')
ESTIMATE_STATUSES = ('draft', 'pending_approval', 'approved', 'rejected')
MANAGER_ROLE     = 'manager'


class User(db.Model):
    __tablename__ = 'user'
    id        = db.Column(db.Integer, primary_key=True)
    email     = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    role      = db.Column(db.String(32), nullable=False, default='salesperson')

    @property
    def is_manager(self):
        return self.role == MANAGER_ROLE


class Job(db.Model):
    __tablename__ = 'job'
    id              = db.Column(db.Integer, primary_key=True)
    job_name        = db.Column(db.String(200), nullable=False)
    service_type    = db.Column(db.String(32), nullable=False, default='insulation')
    framing_size    = db.Column(db.String(8), nullable=False, default='2x6')
    workflow_status = db.Column(db.String(32), nullable=False, default='measuring')
    # The single estimate whose approval currently locks this job's measurements
    locked_by_estimate_id = db.Column(
                    db.Integer,
                    db.ForeignKey('estimate.id', use_alter=True, name='fk_job_lock_estimate'),
                    nullable=True
                  )

    measurements = db.relationship(
                    'Measurement',
                    backref='job',
                    lazy=True,
                    cascade='all, delete-orphan'
                  )
    estimates    = db.relationship(
                    'Estimate',
                    backref='job',
                    lazy=True,
                    cascade='all, delete-orphan',
                    foreign_keys='Estimate.job_id'
                  )


class Measurement(db.Model):
    __tablename__ = 'measurement'
    id                 = db.Column(db.Integer, primary_key=True)
    job_id             = db.Column(db.Integer, db.ForeignKey('job.id'), nullable=False, index=True)
    room_name          = db.Column(db.String(120), nullable=False)
    surface_type       = db.Column(db.String(16), nullable=False, default='wall')
    height             = db.Column(db.Float, nullable=False)
    width              = db.Column(db.Float, nullable=False)
    square_feet        = db.Column(db.Float, nullable=False)
    insulation_type    = db.Column(db.String(16), nullable=False)
    thickness_inches   = db.Column(db.Float, nullable=True)   # closed/open cell, batt, blown-in
    closed_cell_inches = db.Column(db.Float, nullable=True)   # hybrid only
    open_cell_inches   = db.Column(db.Float, nullable=True)   # hybrid only
    r_value            = db.Column(db.String(16), nullable=True)  # display label, e.g. "R-21"

    override_unit_price = db.Column(db.Numeric(10, 2), nullable=True)
    override_set_by     = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    override_set_at     = db.Column(db.DateTime, nullable=True)

    is_locked             = db.Column(db.Boolean, nullable=False, default=False)
    locked_by_estimate_id = db.Column(db.Integer, db.ForeignKey('estimate.id'), nullable=True, index=True)
    locked_at             = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'room_name': self.room_name,
            'surface_type': self.surface_type,
            'height': self.height,
            'width': self.width,
            'square_feet': self.square_feet,
            'insulation_type': self.insulation_type,
            'thickness_inches': self.thickness_inches,
            'closed_cell_inches': self.closed_cell_inches,
            'open_cell_inches': self.open_cell_inches,
            'r_value': self.r_value,
            'override_unit_price': (float(self.override_unit_price)
                                    if self.override_unit_price is not None else None),
            'override_set_at': self.override_set_at.isoformat() if self.override_set_at else None,
            'is_locked': self.is_locked,
            'locked_by_estimate_id': self.locked_by_estimate_id,
            'locked_at': self.locked_at.isoformat() if self.locked_at else None,
        }


class Estimate(db.Model):
    __tablename__ = 'estimate'
    id                 = db.Column(db.Integer, primary_key=True)
    job_id             = db.Column(db.Integer, db.ForeignKey('job.id'), nullable=False, index=True)
    estimate_number    = db.Column(db.String(40), unique=True, nullable=False)
    subtotal           = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    markup_percentage  = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    total_amount       = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    status             = db.Column(db.String(32), nullable=False, default='draft')
    notes              = db.Column(db.Text, default='')
    created_by         = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    approved_by        = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    approved_at        = db.Column(db.DateTime, nullable=True)
    locks_measurements = db.Column(db.Boolean, nullable=False, default=False)
    created_at         = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at         = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'job_id': self.job_id,
            'estimate_number': self.estimate_number,
            'subtotal': float(self.subtotal or 0),
            'markup_percentage': float(self.markup_percentage or 0),
            'total_amount': float(self.total_amount or 0),
            'status': self.status,
            'notes': self.notes or '',
            'created_by': self.created_by,
            'approved_by': self.approved_by,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'locks_measurements': self.locks_measurements,
        }


class RateBracket(db.Model):
    """Catalog row: price per sq ft for an R-value range of one foam type."""
    __tablename__ = 'rate_bracket'
    id              = db.Column(db.Integer, primary_key=True)
    version         = db.Column(db.String(32), nullable=False, index=True)
    insulation_type = db.Column(db.String(16), nullable=False)
    min_r_value     = db.Column(db.Float, nullable=False)
    max_r_value     = db.Column(db.Float, nullable=False)
    price_per_sqft  = db.Column(db.Numeric(10, 4), nullable=False)
    thickness_label = db.Column(db.String(16))


class PerInchRate(db.Model):
    """Catalog row: price per sq ft per inch of installed thickness."""
    __tablename__ = 'per_inch_rate'
    id              = db.Column(db.Integer, primary_key=True)
    version         = db.Column(db.String(32), nullable=False, index=True)
    insulation_type = db.Column(db.String(16), nullable=False)
    price_per_inch  = db.Column(db.Numeric(10, 4), nullable=False)

    __table_args__ = (db.UniqueConstraint('version', 'insulation_type', name='_rate_version_type_uc'),)
