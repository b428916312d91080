from . import db # Imports the db instance from __init__.py
from werkzeug.security import generate_password_hash, check_password_hash
import datetime

# UUIDs are stored in their compact 16 byte form everywhere.
UUID_BINARY = db.LargeBinary(16)

# --- Association Tables (Many-to-Many) ---
user_roles = db.Table('user_roles',
    db.Column('user_id', db.Integer, db.ForeignKey('users.id'), primary_key=True),
    db.Column('role_id', db.Integer, db.ForeignKey('roles.id'), primary_key=True)
)

role_permissions = db.Table('role_permissions',
    db.Column('role_id', db.Integer, db.ForeignKey('roles.id'), primary_key=True),
    db.Column('permission_id', db.Integer, db.ForeignKey('permissions.id'), primary_key=True)
)

# --- Identity ---

class User(db.Model):
    """API users and practitioners. Only rows with an NPI count as practitioners."""
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    hashed_password = db.Column(db.String(200), nullable=True)
    fname = db.Column(db.String(100), nullable=True)
    lname = db.Column(db.String(100), nullable=True)
    npi = db.Column(db.String(15), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    roles = db.relationship('Role', secondary=user_roles, lazy='subquery',
                            backref=db.backref('users', lazy=True))

    def set_password(self, password):
        self.hashed_password = generate_password_hash(password)

    def check_password(self, password):
        if not self.hashed_password:
            return False
        return check_password_hash(self.hashed_password, password)

    def get_permissions(self):
        return sorted({perm.name for role in self.roles for perm in role.permissions})

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "fname": self.fname,
            "lname": self.lname,
            "npi": self.npi,
            "is_active": self.is_active,
            "roles": [role.name for role in self.roles],
            "permissions": self.get_permissions()
        }

    def __repr__(self):
        return f'<User {self.username}>'


class TokenBlacklist(db.Model):
    """
    Model for storing blacklisted JWT tokens (e.g., after logout).
    """
    __tablename__ = 'token_blacklist'
    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(36), nullable=False, unique=True, index=True) # JWT ID
    expires_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f'<TokenBlacklist jti:{self.jti}>'


class Role(db.Model):
    __tablename__ = 'roles'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), unique=True, nullable=False)
    description = db.Column(db.String(255))
    permissions = db.relationship('Permission', secondary=role_permissions, lazy='subquery',
                                  backref=db.backref('roles', lazy=True))

    def __repr__(self):
        return f'<Role {self.name}>'


class Permission(db.Model):
    __tablename__ = 'permissions'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), unique=True, nullable=False)
    description = db.Column(db.String(255))

    def __repr__(self):
        return f'<Permission {self.name}>'


class UuidRegistry(db.Model):
    """Every UUID handed out, with the table that owns it."""
    __tablename__ = 'uuid_registry'
    uuid = db.Column(UUID_BINARY, primary_key=True)
    table_name = db.Column(db.String(255), nullable=False, index=True)
    created = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f'<UuidRegistry {self.table_name}>'

# --- Patient & Encounter ---

class PatientData(db.Model):
    __tablename__ = 'patient_data'
    id = db.Column(db.Integer, primary_key=True)
    pid = db.Column(db.Integer, unique=True, nullable=False, index=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    fname = db.Column(db.String(255), nullable=True)
    lname = db.Column(db.String(255), nullable=True)
    dob = db.Column(db.Date, nullable=True)

    def __repr__(self):
        return f'<PatientData pid:{self.pid} - {self.fname} {self.lname}>'


class FormEncounter(db.Model):
    __tablename__ = 'form_encounter'
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    encounter = db.Column(db.Integer, nullable=False, index=True)
    pid = db.Column(db.Integer, db.ForeignKey('patient_data.pid'), nullable=True)
    date = db.Column(db.DateTime, default=datetime.datetime.utcnow)

    def __repr__(self):
        return f'<FormEncounter {self.encounter} for pid {self.pid}>'

# --- Formulary & coded options ---

class Drug(db.Model):
    __tablename__ = 'drugs'
    drug_id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    name = db.Column(db.String(255), nullable=False)
    drug_code = db.Column(db.String(25), nullable=True) # RxCUI
    form = db.Column(db.String(31), nullable=True) # option_id in drug_form
    unit = db.Column(db.String(31), nullable=True) # option_id in drug_units
    route = db.Column(db.String(100), nullable=True)

    def __repr__(self):
        return f'<Drug {self.drug_id} - {self.name}>'


class ListOption(db.Model):
    """Generic option table shared by many features, keyed by (list_id, option_id)."""
    __tablename__ = 'list_options'
    list_id = db.Column(db.String(100), primary_key=True)
    option_id = db.Column(db.String(100), primary_key=True)
    title = db.Column(db.String(255), nullable=False, default='')
    codes = db.Column(db.String(255), nullable=False, default='')
    seq = db.Column(db.Integer, default=0)
    activity = db.Column(db.Integer, default=1)

    def __repr__(self):
        return f'<ListOption {self.list_id}:{self.option_id}>'


class MedicalCode(db.Model):
    """Code descriptions consulted by the coding lookup."""
    __tablename__ = 'codes'
    id = db.Column(db.Integer, primary_key=True)
    code_type = db.Column(db.String(31), nullable=False, index=True) # e.g. RXCUI, SNOMED-CT, NDC
    code = db.Column(db.String(25), nullable=False, index=True)
    code_text = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f'<MedicalCode {self.code_type}:{self.code}>'

# --- Prescriptions ---

class Prescription(db.Model):
    __tablename__ = 'prescriptions'
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    patient_id = db.Column(db.Integer, db.ForeignKey('patient_data.pid'), nullable=True, index=True)
    encounter = db.Column(db.Integer, nullable=True)
    provider_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)

    drug = db.Column(db.String(150), nullable=True)
    drug_id = db.Column(db.Integer, nullable=False, default=0)
    rxnorm_drugcode = db.Column(db.String(25), nullable=True)
    form = db.Column(db.String(31), nullable=True) # option_id in drug_form
    dosage = db.Column(db.String(100), nullable=True)
    quantity = db.Column(db.String(31), nullable=True)
    size = db.Column(db.String(25), nullable=True)
    unit = db.Column(db.String(31), nullable=True) # option_id in drug_units
    route = db.Column(db.String(100), nullable=True)
    interval = db.Column(db.String(31), nullable=True) # option_id in drug_interval
    substitute = db.Column(db.Integer, nullable=True)
    refills = db.Column(db.Integer, nullable=True)
    per_refill = db.Column(db.Integer, nullable=True)
    medication = db.Column(db.Integer, nullable=True)
    note = db.Column(db.Text, nullable=True)
    active = db.Column(db.Integer, nullable=False, default=1)

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    usage_category = db.Column(db.String(100), nullable=True) # option_id in medication-usage-category
    usage_category_title = db.Column(db.String(255), nullable=False, default='')
    request_intent = db.Column(db.String(100), nullable=True) # option_id in medication-request-intent
    request_intent_title = db.Column(db.String(255), nullable=False, default='')
    drug_dosage_instructions = db.Column(db.Text, nullable=True)

    # Audit fields
    date_added = db.Column(db.DateTime, nullable=True)
    date_modified = db.Column(db.DateTime, nullable=True)
    created_by = db.Column(db.Integer, nullable=True) # users.id
    updated_by = db.Column(db.Integer, nullable=True) # users.id
    user = db.Column(db.String(50), nullable=True)

    def __repr__(self):
        return f'<Prescription {self.id} - {self.drug} for pid {self.patient_id}>'

# --- Legacy medication list ---

class ListEntry(db.Model):
    """Patient issue list row; type='medication' rows feed the medication view."""
    __tablename__ = 'lists'
    id = db.Column(db.Integer, primary_key=True)
    uuid = db.Column(UUID_BINARY, unique=True, nullable=True)
    pid = db.Column(db.Integer, db.ForeignKey('patient_data.pid'), nullable=False, index=True)
    type = db.Column(db.String(255), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=True)
    diagnosis = db.Column(db.String(255), nullable=True)
    activity = db.Column(db.Integer, nullable=True, default=1)
    begdate = db.Column(db.DateTime, nullable=True)
    enddate = db.Column(db.DateTime, nullable=True)
    date = db.Column(db.DateTime, default=datetime.datetime.utcnow)
    comments = db.Column(db.Text, nullable=True)
    user = db.Column(db.String(255), nullable=True) # users.username

    medication_detail = db.relationship('ListMedication', backref='list_entry', uselist=False)

    def __repr__(self):
        return f'<ListEntry {self.id} ({self.type}) - {self.title}>'


class ListMedication(db.Model):
    __tablename__ = 'lists_medication'
    id = db.Column(db.Integer, primary_key=True)
    list_id = db.Column(db.Integer, db.ForeignKey('lists.id'), nullable=False, index=True)
    usage_category = db.Column(db.String(100), nullable=True)
    usage_category_title = db.Column(db.String(255), nullable=False, default='')
    request_intent = db.Column(db.String(100), nullable=True)
    request_intent_title = db.Column(db.String(255), nullable=False, default='')
    drug_dosage_instructions = db.Column(db.Text, nullable=True)


class IssueEncounter(db.Model):
    """Links list items to the encounters they were addressed in (0..* per item)."""
    __tablename__ = 'issue_encounter'
    id = db.Column(db.Integer, primary_key=True)
    pid = db.Column(db.Integer, nullable=False)
    list_id = db.Column(db.Integer, db.ForeignKey('lists.id'), nullable=False)
    encounter = db.Column(db.Integer, nullable=False)
    resolved = db.Column(db.Integer, nullable=False, default=0)
