from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Text, Uuid
from sqlalchemy.sql import func
from app.core.database import Base
import uuid

class Parto(Base):
    __tablename__ = "partos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    correlativo = Column(Integer, nullable=True, index=True)

    # Traceability
    trace_id = Column(String(64), unique=True, nullable=False, index=True)
    source = Column(String(100), nullable=True)
    source_line = Column(Integer, nullable=True)
    data_hash = Column(String(255), nullable=True)

    # Identity and dates
    n_parto_ano = Column(Integer, nullable=True)
    n_parto_mes = Column(Integer, nullable=True)
    fecha_parto = Column(Date, nullable=True, index=True)
    hora_parto = Column(String(20), nullable=True)
    mes_parto = Column(Integer, nullable=True, index=True)
    ano_parto = Column(Integer, nullable=True, index=True)
    tipo_parto = Column(String(100), nullable=True, index=True)
    paridad = Column(String(50), nullable=True)
    presentacion = Column(String(50), nullable=True)

    # Mother
    nombre_y_apellido = Column(String(255), nullable=True)
    rut = Column(String(20), nullable=True)
    rut_normalized = Column(String(20), nullable=True, index=True)
    edad = Column(Integer, nullable=True)
    pueblo_originario = Column(Integer, default=0)
    nombre_pueblo_originario = Column(String(100), nullable=True)
    migrante = Column(Integer, default=0)
    nacionalidad = Column(String(100), nullable=True)
    discapacidad = Column(Integer, default=0)
    telefono = Column(String(50), nullable=True)
    comuna = Column(String(100), nullable=True, index=True)
    consultorio = Column(String(100), nullable=True, index=True)
    emb_controlado = Column(Integer, default=0)
    cca = Column(Integer, default=0)
    gemela = Column(Integer, default=0)
    privada_libertad = Column(Integer, default=0)
    trans_no_binario = Column(Integer, default=0)
    identidad_genero = Column(String(50), nullable=True)
    taller_chcc = Column(Integer, default=0)

    # Labor and delivery
    eg = Column(Float, nullable=True)
    dias = Column(Integer, nullable=True)
    rotura_membranas = Column(String(100), nullable=True)
    induccion = Column(Integer, default=0)
    misotrol = Column(String(100), nullable=True)
    conduccion_ocitocica = Column(Integer, default=0)
    monitoreo = Column(String(100), nullable=True)
    libertad_movimiento_tdp = Column(Integer, default=0)
    motivo_sin_libertad_movimiento = Column(String(255), nullable=True)
    posicion_materna_expulsivo = Column(String(100), nullable=True)
    episiotomia = Column(Integer, default=0)
    desgarro = Column(String(100), nullable=True)
    causa_cesarea = Column(String(255), nullable=True)
    medidas_no_farmacologicas_dolor = Column(String(255), nullable=True)
    eq = Column(String(50), nullable=True)
    tipo_anestesia = Column(String(100), nullable=True)
    hora_anestesia = Column(String(20), nullable=True)
    medico_anestesista = Column(String(255), nullable=True)
    anestesia_local = Column(Integer, default=0)
    manejo_farmacologico_dolor = Column(Integer, default=0)
    manejo_no_farmacologico_dolor = Column(Integer, default=0)
    motivo_no_anestesia = Column(String(255), nullable=True)
    plan_parto = Column(Integer, default=0)
    trabajo_parto = Column(Integer, default=0)
    regimen_hidrico_amplio_tdp = Column(Integer, default=0)
    ligadura_tardia_cordon = Column(Integer, default=0)
    atencion_pertinencia_cultural = Column(Integer, default=0)
    alumbramiento_conducido = Column(Integer, default=0)

    # Labs
    grupo_rh = Column(String(20), nullable=True)
    chagas = Column(Integer, default=0)
    vih = Column(Integer, default=0)
    hepatitis_b = Column(Integer, default=0)
    vih_al_parto = Column(Integer, default=0)
    vih_al_parto_original = Column(String(50), nullable=True)
    rpr_vdrl = Column(Integer, default=0)
    sgb = Column(String(50), nullable=True)
    sgb_tratamiento_al_parto = Column(String(50), nullable=True)

    # Newborn
    peso = Column(Float, nullable=True)
    talla = Column(Float, nullable=True)
    cc = Column(Float, nullable=True)
    apgar1 = Column(Integer, nullable=True)
    apgar5 = Column(Integer, nullable=True)
    apgar10 = Column(Integer, nullable=True)
    sexo = Column(String(20), nullable=True)
    malformaciones = Column(Integer, default=0)

    # Staff
    medico_obstetra = Column(String(255), nullable=True, index=True)
    medico_pediatra = Column(String(255), nullable=True)
    matrona_preparto = Column(String(255), nullable=True)
    matrona_parto = Column(String(255), nullable=True, index=True)
    matrona_rn = Column(String(255), nullable=True)

    # Companionship, attachment and destination
    acompanamiento_preparto = Column(Integer, default=0)
    acompanamiento_parto = Column(Integer, default=0)
    acompanamiento_puerperio = Column(Integer, default=0)
    acompanamiento_rn = Column(Integer, default=0)
    nombre_acompanante = Column(String(255), nullable=True)
    parentesco_acompanante_madre = Column(String(100), nullable=True)
    parentesco_acompanante_rn = Column(String(100), nullable=True)
    apego_piel_30min = Column(Integer, default=0)
    apego_piel_30min_original = Column(String(100), nullable=True)
    causa_no_apego = Column(String(255), nullable=True)
    lactancia_precoz_60min = Column(Integer, default=0)
    destino = Column(String(100), nullable=True)
    alojamiento_conjunto = Column(Integer, default=0)
    comentarios = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
